"""End-to-end run: tenants and raw data in, validated series, charts and statistics out."""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from . import aggregate, envelope, scenario, summary
from .config import SiteProfileConfig, default_config
from .irradiance import IrradianceProfile, static_profile
from .profiles import RawLookup
from .records import ShopType, Tenant, parse_shop_types, parse_tenants
from .types import (
    AverageDay,
    ChartPoint,
    DateFilter,
    EnvelopePoint,
    LoadStats,
    OverPanelingStats,
    PVStats,
    SimulationConfig,
    StackedResult,
    StackMode,
    ValidatedSiteData,
)

logger = logging.getLogger(__name__)


@dataclass
class LoadProfileResult:
    validated: ValidatedSiteData
    average_day: AverageDay
    chart: list[ChartPoint]
    envelope: list[EnvelopePoint]
    stacked: StackedResult
    load_stats: LoadStats
    pv_stats: Optional[PVStats]
    overpaneling_stats: Optional[OverPanelingStats]
    is_weekend: bool

    @property
    def scada_count(self) -> int:
        return self.validated.scada_count

    @property
    def estimated_count(self) -> int:
        return self.validated.estimated_count


def as_tenants(tenants: Iterable) -> list[Tenant]:
    items = list(tenants)
    if items and not isinstance(items[0], Tenant):
        return parse_tenants(items)
    return items


def _as_shop_types(shop_types: Optional[Iterable]) -> list[ShopType]:
    items = list(shop_types or [])
    if items and not isinstance(items[0], ShopType):
        return parse_shop_types(items)
    return items


def resolve_irradiance(
    sim: SimulationConfig, irradiance: Optional[IrradianceProfile]
) -> Optional[IrradianceProfile]:
    """The profile the simulator runs on; None leaves PV disabled."""
    if not sim.pv_enabled:
        return None
    if irradiance is not None:
        return irradiance
    if sim.irradiance_source == "static":
        return static_profile()
    logger.info("No Solcast profile supplied; running without PV")
    return None


def run(
    tenants: Sequence[Tenant] | Sequence[dict],
    shop_types: Optional[Sequence[ShopType] | Sequence[dict]] = None,
    raw_lookup: RawLookup = None,
    date_filter: Optional[DateFilter] = None,
    sim: Optional[SimulationConfig] = None,
    irradiance: Optional[IrradianceProfile] = None,
    config: Optional[SiteProfileConfig] = None,
    stack_mode: StackMode = "avg",
    month: Optional[int] = None,
    day_of_week: Optional[int] = None,
) -> LoadProfileResult:
    """
    Validate and aggregate the site, then build the average-day chart, the
    envelope and stacked views, the PV/battery simulation and its statistics.

    Records may be given as models or as plain dicts (validated on the way in).
    """
    cfg = config or default_config()
    flt = date_filter or DateFilter()
    sim = sim or SimulationConfig()
    tenant_list = as_tenants(tenants)
    shop_list = _as_shop_types(shop_types)

    validated = aggregate.validate_site_data(tenant_list, raw_lookup, cfg.aggregation)
    avg = envelope.average_day(validated, shop_list, flt, sim)
    env = envelope.compute_envelope(validated, shop_list, flt, sim, cfg.envelope)
    stacked = envelope.stacked_by_tenant(validated, flt, stack_mode, sim)

    is_weekend = flt.all_weekend
    chart = scenario.simulate(
        avg.chart,
        sim,
        resolve_irradiance(sim, irradiance),
        is_weekend=is_weekend,
        month=month,
        day_of_week=day_of_week,
    )

    return LoadProfileResult(
        validated=validated,
        average_day=avg,
        chart=chart,
        envelope=env,
        stacked=stacked,
        load_stats=summary.load_stats(chart),
        pv_stats=summary.pv_stats(chart),
        overpaneling_stats=summary.overpaneling_stats(chart, sim.dc_ac_ratio),
        is_weekend=is_weekend,
    )
