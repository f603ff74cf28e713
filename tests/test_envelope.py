import numpy as np
import pandas as pd
import pytest

from siteprofile import envelope
from siteprofile.exceptions import ConfigError
from siteprofile.records import Tenant
from siteprofile.types import DateFilter, SimulationConfig


@pytest.fixture
def spiky_site(flat_frame):
    """99 near-flat days around 10 kW and one day with a 1000 kW spike at noon."""
    dates = pd.date_range("2025-01-01", periods=100, freq="D")
    frames = [flat_frame([d], 10.0 + i * 0.001) for i, d in enumerate(dates[:99])]
    spike = flat_frame([dates[99]], 10.0)
    spike.iloc[0, 12] = 1000.0
    return pd.concat(frames + [spike])


def test_envelope_ignores_single_spike_day(validated_factory, spiky_site):
    points = envelope.compute_envelope(validated_factory(site=spiky_site))
    assert len(points) == 24
    noon = points[12]
    assert noon["hour"] == "12:00"
    assert noon["max"] == pytest.approx(10.098)
    assert noon["min"] == pytest.approx(10.001)
    assert noon["avg"] > noon["max"]


def test_envelope_curves_are_whole_days(validated_factory, spiky_site):
    points = envelope.compute_envelope(validated_factory(site=spiky_site))
    assert len({round(p["max"], 9) for p in points}) == 1
    assert len({round(p["min"], 9) for p in points}) == 1


def test_envelope_empty_when_filter_leaves_nothing(validated_factory, flat_frame):
    # 2025-01-06 and 2025-01-07 are Monday and Tuesday
    v = validated_factory(site=flat_frame(["2025-01-06", "2025-01-07"], 10))
    assert envelope.compute_envelope(v, date_filter=DateFilter(days={0, 6})) == []
    assert envelope.compute_envelope(validated_factory()) == []


def test_envelope_adds_estimated_tenants_and_scales(validated_factory, flat_frame):
    estimated = Tenant(id="e", area_sqm=30)
    v = validated_factory(site=flat_frame(["2025-01-06", "2025-01-07"], 10), non_metered=[estimated])
    constant = 50.0 / 24 * (6.93 / 7)

    points = envelope.compute_envelope(v)
    assert points[0]["min"] == pytest.approx(10.0 + constant)

    sim = SimulationConfig(display_unit="kva", power_factor=0.8, diversity_factor=0.5)
    scaled = envelope.compute_envelope(v, sim=sim)
    assert scaled[0]["avg"] == pytest.approx((10.0 + constant) * 0.5 / 0.8)


def test_filter_dates(flat_frame):
    frame = flat_frame(["2024-12-29", "2025-01-04", "2025-01-06", "2025-02-03"], 1)
    assert len(envelope.filter_dates(frame, year_from=2025)) == 3
    assert len(envelope.filter_dates(frame, year_to=2024)) == 1
    assert len(envelope.filter_dates(frame, months=[2])) == 1
    # Sunday 2024-12-29 and Saturday 2025-01-04
    weekend = envelope.filter_dates(frame, days=[0, 6])
    assert list(weekend.index) == [pd.Timestamp("2024-12-29"), pd.Timestamp("2025-01-04")]


@pytest.fixture
def two_tenants(validated_factory, flat_frame):
    a = pd.concat([flat_frame(["2025-01-06"], 10), flat_frame(["2025-01-07"], 1)])
    b = pd.concat([flat_frame(["2025-01-06"], 1), flat_frame(["2025-01-07"], 20)])
    return validated_factory(tenant_frames={"A": a, "B": b})


@pytest.mark.parametrize(
    "mode, expected",
    [("avg", {"A": 5.5, "B": 10.5}), ("max", {"A": 1.0, "B": 20.0}), ("min", {"A": 10.0, "B": 1.0})],
)
def test_stacked_modes(two_tenants, mode, expected):
    result = envelope.stacked_by_tenant(two_tenants, mode=mode)
    assert len(result.data) == 24
    for point in result.data:
        assert point["A"] == pytest.approx(expected["A"])
        assert point["B"] == pytest.approx(expected["B"])


def test_stacked_keys_use_palette(two_tenants):
    result = envelope.stacked_by_tenant(two_tenants)
    assert [k["id"] for k in result.tenant_keys] == ["A", "B"]
    assert result.tenant_keys[0]["color"] == "#6366f1"
    assert result.tenant_keys[1]["color"] == "#f59e0b"


def test_stacked_rejects_unknown_mode(two_tenants):
    with pytest.raises(ConfigError):
        envelope.stacked_by_tenant(two_tenants, mode="median")


def test_stacked_empty_without_metered_tenants(validated_factory):
    result = envelope.stacked_by_tenant(validated_factory())
    assert result.data == []
    assert result.tenant_keys == []


def test_average_day_combines_metered_and_estimated(validated_factory, flat_frame):
    estimated = Tenant(id="e", name="Estimate", area_sqm=30)
    v = validated_factory(
        tenant_frames={"A": flat_frame(["2025-01-06", "2025-01-07"], 10)},
        non_metered=[estimated],
    )
    constant = 50.0 / 24 * (6.93 / 7)
    result = envelope.average_day(v)

    assert result.validated_date_count == 2
    assert result.chart[5]["A"] == pytest.approx(10.0)
    assert result.chart[5]["Estimate"] == pytest.approx(constant)
    assert result.chart[5]["total"] == pytest.approx(10.0 + constant)
    assert result.weekday_daily_kwh == pytest.approx(240.0 + 50.0)
    assert result.weekend_daily_kwh == pytest.approx(50.0 * envelope.WEEKEND_ESTIMATE_FACTOR)


def test_average_day_applies_diversity(validated_factory, flat_frame):
    v = validated_factory(tenant_frames={"A": flat_frame(["2025-01-06"], 10)})
    result = envelope.average_day(v, sim=SimulationConfig(diversity_factor=0.8))
    assert all(p["total"] == pytest.approx(8.0) for p in result.chart)
    # daily energy is reported before diversity
    assert result.weekday_daily_kwh == pytest.approx(240.0)
    assert np.isclose(result.weekend_daily_kwh, 0.0)
