from __future__ import annotations
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from . import canon, utils
from .config import EnvelopeConfig
from .exceptions import ConfigError, require
from .profiles import (
    ShopTypes,
    base_profile,
    estimate_from_shop_type,
    has_profile_data,
    shop_type_for,
    template_profile,
)
from .types import (
    AverageDay,
    DateFilter,
    DayFrame,
    EnvelopePoint,
    SimulationConfig,
    StackedResult,
    StackMode,
    TenantKey,
    ValidatedSiteData,
)

# Weekend share of a shop-type estimate when no meter profile says otherwise
WEEKEND_ESTIMATE_FACTOR = 0.85


def filter_dates(
    frame: pd.DataFrame,
    year_from: Optional[int] = None,
    year_to: Optional[int] = None,
    days: Optional[Iterable[int]] = None,
    months: Optional[Iterable[int]] = None,
) -> DayFrame:
    """Keep dates within [year_from, year_to], in `months` (1..12) and on `days` (0=Sunday)."""
    if frame.empty:
        return utils.empty_day_frame()
    idx = pd.DatetimeIndex(frame.index)
    mask = np.ones(len(idx), dtype=bool)
    if year_from is not None:
        mask &= idx.year >= year_from
    if year_to is not None:
        mask &= idx.year <= year_to
    if months is not None:
        mask &= np.isin(idx.month, list(months))
    if days is not None:
        mask &= np.isin(utils.day_indices(idx), list(days))
    return utils.as_day_frame(frame.loc[mask])


def apply_filter(frame: pd.DataFrame, date_filter: Optional[DateFilter] = None) -> DayFrame:
    f = date_filter or DateFilter()
    return filter_dates(frame, f.year_from, f.year_to, f.days, f.months)


def estimated_contribution(
    validated: ValidatedSiteData, shop_types: ShopTypes = None, days: Iterable[int] = canon.ALL_DAYS
) -> np.ndarray:
    """Summed 24-hour template of all non-metered tenants for the day selection."""
    days = list(days)
    out = np.zeros(canon.HOURS, dtype=float)
    for tenant in validated.non_metered_tenants:
        out += template_profile(tenant, shop_types, days)
    return out


def _percentile_position(n: int, pct: float) -> int:
    # half-up rounding of (n-1)*p/100
    return int(np.clip(np.floor((n - 1) * pct / 100.0 + 0.5), 0, n - 1))


def compute_envelope(
    validated: ValidatedSiteData,
    shop_types: ShopTypes = None,
    date_filter: Optional[DateFilter] = None,
    sim: Optional[SimulationConfig] = None,
    config: Optional[EnvelopeConfig] = None,
) -> list[EnvelopePoint]:
    """
    Min/avg/max hourly envelope over the filtered validated days.

    Each day is the site total plus the constant estimated-tenant template,
    scaled by diversity and display unit. Days are ranked by daily total; the
    min and max curves are the whole days at the lower and upper percentile
    ranks, avg is the per-hour mean over all days. Empty when no day survives.
    """
    flt = date_filter or DateFilter()
    sim = sim or SimulationConfig()
    cfg = config or EnvelopeConfig()

    days = apply_filter(validated.site, flt)
    if days.empty:
        return []

    composite = days.to_numpy() + estimated_contribution(validated, shop_types, flt.days)
    composite = composite * sim.diversity_factor * sim.unit_multiplier

    n = len(composite)
    order = np.argsort(composite.sum(axis=1), kind="stable")
    low = composite[order[_percentile_position(n, cfg.lower_percentile)]]
    high = composite[order[_percentile_position(n, cfg.upper_percentile)]]
    avg = composite.mean(axis=0)

    return [
        EnvelopePoint(
            hour=canon.HOUR_LABELS[h],
            min=float(low[h]),
            max=float(high[h]),
            avg=float(avg[h]),
        )
        for h in range(canon.HOURS)
    ]


def tenant_keys(tenant_ids: Iterable[str], labels: dict[str, str]) -> list[TenantKey]:
    colors = canon.METER_COLORS
    return [
        TenantKey(id=tid, label=labels.get(tid) or tid[:8], color=colors[i % len(colors)])
        for i, tid in enumerate(tenant_ids)
    ]


def stacked_by_tenant(
    validated: ValidatedSiteData,
    date_filter: Optional[DateFilter] = None,
    mode: StackMode = "avg",
    sim: Optional[SimulationConfig] = None,
) -> StackedResult:
    """
    Per-tenant hourly breakdown of the metered tenants over the filtered days.

    avg: each tenant's mean over the filtered dates (missing dates count 0).
    max/min: the one filtered date with the highest/lowest site total, broken
    down by tenant, so the bars always describe a real day.
    """
    sim = sim or SimulationConfig()
    require(mode in ("avg", "max", "min"), f"Unknown stack mode '{mode}'", ConfigError)

    site = apply_filter(validated.site, date_filter)
    ids = [tid for tid in validated.metered_tenant_ids if tid in validated.tenant_frames]
    if site.empty or not ids:
        return StackedResult(data=[], tenant_keys=[])

    if mode == "avg":
        dates = site.index
    else:
        totals = site.sum(axis=1)
        dates = pd.DatetimeIndex([totals.idxmax() if mode == "max" else totals.idxmin()])

    scale = sim.diversity_factor * sim.unit_multiplier
    profiles = {
        tid: validated.tenant_frames[tid].reindex(dates, fill_value=0.0).mean(axis=0).to_numpy()
        * scale
        for tid in ids
    }
    keys = tenant_keys(ids, validated.tenant_labels)
    data = []
    for h in range(canon.HOURS):
        point: dict[str, float | str] = {"hour": canon.HOUR_LABELS[h]}
        for k in keys:
            point[k["id"]] = float(profiles[k["id"]][h])
        data.append(point)
    return StackedResult(data=data, tenant_keys=keys)


def _daily_kwh_by_day_type(
    validated: ValidatedSiteData, shop_types: ShopTypes
) -> tuple[float, float]:
    site = validated.site
    weekday = weekend = 0.0
    if not site.empty:
        totals = site.sum(axis=1)
        weekend_mask = np.isin(utils.day_indices(pd.DatetimeIndex(site.index)), list(canon.WEEKEND_DAYS))
        if (~weekend_mask).any():
            weekday = float(totals[~weekend_mask].mean())
        if weekend_mask.any():
            weekend = float(totals[weekend_mask].mean())

    for tenant in validated.non_metered_tenants:
        if has_profile_data(tenant):
            weekday += float(base_profile(tenant, shop_types, weekend=False).sum())
            weekend += float(base_profile(tenant, shop_types, weekend=True).sum())
        else:
            daily = float(estimate_from_shop_type(tenant, shop_type_for(tenant, shop_types)).sum())
            weekday += daily
            weekend += daily * WEEKEND_ESTIMATE_FACTOR
    return weekday, weekend


def average_day(
    validated: ValidatedSiteData,
    shop_types: ShopTypes = None,
    date_filter: Optional[DateFilter] = None,
    sim: Optional[SimulationConfig] = None,
) -> AverageDay:
    """
    The composite average day: metered tenants averaged over the filtered
    validated dates plus each estimated tenant's template, keyed by tenant
    label, with a running total. Diversity and display unit are applied to
    every value; the weekday/weekend daily kWh are reported undiversified in kW terms.
    """
    flt = date_filter or DateFilter()
    sim = sim or SimulationConfig()
    site = apply_filter(validated.site, flt)

    columns: dict[str, np.ndarray] = {}

    def add(label: str, values: np.ndarray) -> None:
        columns[label] = columns.get(label, np.zeros(canon.HOURS)) + values

    if not site.empty:
        for tid in validated.metered_tenant_ids:
            frame = validated.tenant_frames[tid].reindex(site.index, fill_value=0.0)
            add(validated.tenant_labels.get(tid, tid), frame.mean(axis=0).to_numpy())

    for tenant in validated.non_metered_tenants:
        add(tenant.label, template_profile(tenant, shop_types, flt.days))

    scale = sim.diversity_factor * sim.unit_multiplier
    total = np.zeros(canon.HOURS)
    for values in columns.values():
        total = total + values

    chart = []
    for h in range(canon.HOURS):
        point: dict[str, float | str] = {"hour": canon.HOUR_LABELS[h], "total": float(total[h] * scale)}
        for label, values in columns.items():
            point[label] = float(values[h] * scale)
        chart.append(point)

    weekday_kwh, weekend_kwh = _daily_kwh_by_day_type(validated, shop_types)
    return AverageDay(
        chart=chart,
        weekday_daily_kwh=weekday_kwh,
        weekend_daily_kwh=weekend_kwh,
        validated_date_count=len(site),
    )
