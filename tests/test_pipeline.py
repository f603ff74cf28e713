import pytest

from siteprofile import pipeline
from siteprofile.records import Meter, Tenant
from siteprofile.types import DateFilter, SimulationConfig


@pytest.fixture
def three_tenants(raw_factory, tenant_factory):
    return [tenant_factory(tid, raw=raw_factory(days=7, value=10.0)) for tid in ("a", "b", "c")]


def test_flat_site_end_to_end(three_tenants):
    result = pipeline.run(three_tenants)
    assert result.validated.validated_date_count == 7
    assert result.scada_count == 3
    assert result.estimated_count == 0
    assert all(p["total"] == pytest.approx(30.0) for p in result.chart)
    assert result.load_stats["total_daily"] == pytest.approx(720.0)
    assert result.load_stats["load_factor_pct"] == pytest.approx(100.0)
    assert all(p["min"] == pytest.approx(30.0) and p["max"] == pytest.approx(30.0) for p in result.envelope)
    assert [k["id"] for k in result.stacked.tenant_keys] == ["a", "b", "c"]
    assert result.pv_stats is None
    assert result.overpaneling_stats is None
    assert not result.is_weekend


def test_energy_readings_give_the_same_site(raw_factory, tenant_factory):
    tenants = [tenant_factory(tid, raw=raw_factory(days=7, value=5.0), unit="kWh") for tid in "abc"]
    result = pipeline.run(tenants)
    assert result.load_stats["total_daily"] == pytest.approx(720.0)


def test_precomputed_profiles_without_raw_data():
    tenants = [
        Tenant(
            id=tid,
            area_sqm=100,
            scada_import=Meter(
                id=f"m-{tid}", area_sqm=100, detected_interval_minutes=30, load_profile_weekday=[10.0] * 48
            ),
        )
        for tid in "abc"
    ]
    # Wednesday carries a day multiplier of 1
    result = pipeline.run(tenants, date_filter=DateFilter(days={3}))
    assert result.validated.is_empty
    assert result.envelope == []
    assert result.scada_count == 3
    assert result.load_stats["total_daily"] == pytest.approx(720.0)


def test_dict_records_with_joined_imports(raw_factory):
    rows = [
        {
            "id": tid,
            "name": tid.upper(),
            "area_sqm": 100,
            "scada_imports": {"id": f"m-{tid}", "area_sqm": 100, "value_unit": "kW", "raw_data": raw_factory(days=2)},
        }
        for tid in "ab"
    ]
    shop_types = [{"id": "retail", "kwh_per_sqm_month": 60}]
    result = pipeline.run(rows, shop_types)
    assert result.validated.metered_tenant_ids == ["a", "b"]
    assert result.chart[0]["A"] == pytest.approx(10.0)


def test_pv_run_reports_pv_and_overpaneling(three_tenants):
    sim = SimulationConfig(inverter_ac_kva=50, dc_ac_ratio=1.3)
    result = pipeline.run(three_tenants, sim=sim)
    assert "pvGeneration" in result.chart[12]
    assert result.pv_stats["total_generation"] > 0
    assert result.overpaneling_stats is not None


def test_solcast_source_without_profile_runs_without_pv(three_tenants):
    sim = SimulationConfig(inverter_ac_kva=50, irradiance_source="solcast")
    result = pipeline.run(three_tenants, sim=sim)
    assert "pvGeneration" not in result.chart[12]
    assert pipeline.resolve_irradiance(SimulationConfig(), None) is None


def test_weekend_selection_flags_the_run(three_tenants):
    result = pipeline.run(three_tenants, date_filter=DateFilter(days={0, 6}))
    assert result.is_weekend
    # 2025-01-11 and 2025-01-12 fall in the generated week
    assert result.average_day.validated_date_count == 2
