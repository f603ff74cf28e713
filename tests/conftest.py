import pandas as pd
import pytest

from siteprofile import utils
from siteprofile.records import Meter, ShopType, Tenant
from siteprofile.types import ValidatedSiteData


def _raw_rows(start="2025-01-06", days=7, value=10.0, interval_min=30, dates=None):
    rng = pd.DatetimeIndex(dates) if dates is not None else pd.date_range(start, periods=days, freq="D")
    rows = []
    for d in rng:
        v = value(d) if callable(value) else value
        for m in range(0, 24 * 60, interval_min):
            rows.append(
                {"date": d.strftime("%Y-%m-%d"), "time": f"{m // 60:02d}:{m % 60:02d}", "value": v}
            )
    return rows


@pytest.fixture
def raw_factory():
    """Canonical [{date, time, value}] rows at a fixed cadence; value may be a callable of the date."""
    return _raw_rows


@pytest.fixture
def tenant_factory():
    def make(tid, raw=None, area=100.0, meter_area=100.0, unit="kW", name=None, **kw):
        meter = Meter(id=f"m-{tid}", area_sqm=meter_area, value_unit=unit, raw_data=raw)
        return Tenant(id=tid, name=name or f"Tenant {tid}", area_sqm=area, scada_import=meter, **kw)

    return make


@pytest.fixture
def retail_shop_type():
    # 12.5% per hour from 09:00 to 16:59
    profile = [12.5 if 9 <= h < 17 else 0.0 for h in range(24)]
    return ShopType(id="retail", name="Retail", kwh_per_sqm_month=60.0, load_profile_weekday=profile)


@pytest.fixture
def validated_factory():
    """Build a ValidatedSiteData straight from per-tenant hourly frames."""

    def make(tenant_frames=None, non_metered=(), site=None):
        frames = {k: utils.as_day_frame(v) for k, v in (tenant_frames or {}).items()}
        if site is None:
            site = utils.sum_frames(frames.values())
        else:
            site = utils.as_day_frame(site)
        return ValidatedSiteData(
            site=site,
            tenant_frames=frames,
            tenant_labels={k: k for k in frames},
            metered_tenant_ids=list(frames),
            non_metered_tenants=list(non_metered),
            scada_count=len(frames),
            estimated_count=len(non_metered),
            available_years=utils.frame_years(site),
        )

    return make


@pytest.fixture
def flat_frame():
    """Hourly frame with the same kW value in every hour of every date."""

    def make(dates, value):
        idx = pd.DatetimeIndex(dates)
        return pd.DataFrame([[float(value)] * 24] * len(idx), index=idx)

    return make
