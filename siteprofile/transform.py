from __future__ import annotations
from datetime import date as _date
from typing import Optional, Union

import numpy as np
import pandas as pd

from . import canon, utils
from .profiles import ShopTypes, base_profile
from .types import DisplayUnit, MonthStats, MonthSummary, ValidatedSiteData

DateLike = Union[str, _date, pd.Timestamp]


def _chart(columns: dict[str, np.ndarray], multiplier: float) -> list[dict[str, float | str]]:
    total = np.zeros(canon.HOURS)
    for values in columns.values():
        total = total + values
    out = []
    for h in range(canon.HOURS):
        point: dict[str, float | str] = {"hour": canon.HOUR_LABELS[h], "total": float(total[h] * multiplier)}
        for label, values in columns.items():
            point[label] = float(values[h] * multiplier)
        out.append(point)
    return out


def _add(columns: dict[str, np.ndarray], label: str, values: np.ndarray) -> None:
    columns[label] = columns.get(label, np.zeros(canon.HOURS)) + np.asarray(values, dtype=float)


def available_dates(validated: ValidatedSiteData) -> list[_date]:
    """Every date any metered tenant reports, ascending."""
    idx = pd.DatetimeIndex([], name=canon.INDEX_NAME)
    for frame in validated.tenant_frames.values():
        idx = idx.union(pd.DatetimeIndex(frame.index))
    return [ts.date() for ts in idx.sort_values()]


def specific_date_view(
    validated: ValidatedSiteData,
    day: DateLike,
    shop_types: ShopTypes = None,
    display_unit: DisplayUnit = "kw",
    power_factor: float = 1.0,
) -> Optional[list[dict[str, float | str]]]:
    """
    Per-tenant hourly kW for one calendar date.

    Metered tenants report their own readings for that date; estimated tenants
    contribute their weekday or weekend template. None when no metered tenant
    has data for the date.
    """
    ts = pd.Timestamp(day).normalize()
    columns: dict[str, np.ndarray] = {}
    found = False
    for tid in validated.metered_tenant_ids:
        frame = validated.tenant_frames[tid]
        if ts not in frame.index:
            continue
        found = True
        _add(columns, validated.tenant_labels.get(tid, tid), frame.loc[ts].to_numpy())
    if not found:
        return None

    weekend = utils.is_weekend(ts)
    for tenant in validated.non_metered_tenants:
        _add(columns, tenant.label, base_profile(tenant, shop_types, weekend))

    return _chart(columns, utils.unit_multiplier(display_unit, power_factor))


def _month_mask(index: pd.Index, month: str) -> np.ndarray:
    return np.asarray(pd.DatetimeIndex(index).strftime("%Y-%m") == month)


def month_view(
    validated: ValidatedSiteData,
    month: str,
    display_unit: DisplayUnit = "kw",
    power_factor: float = 1.0,
) -> Optional[list[dict[str, float | str]]]:
    """Average hourly kW per metered tenant over the days it reports in `month` ("YYYY-MM")."""
    columns: dict[str, np.ndarray] = {}
    for tid in validated.metered_tenant_ids:
        frame = validated.tenant_frames[tid]
        in_month = frame.loc[_month_mask(frame.index, month)]
        if in_month.empty:
            continue
        _add(columns, validated.tenant_labels.get(tid, tid), in_month.mean(axis=0).to_numpy())
    if not columns:
        return None
    return _chart(columns, utils.unit_multiplier(display_unit, power_factor))


def month_stats(validated: ValidatedSiteData, month: str) -> Optional[MonthStats]:
    """Energy, peak demand and day count across metered tenants for one month."""
    frames = [
        f.loc[_month_mask(f.index, month)] for f in validated.tenant_frames.values()
    ]
    combined = utils.sum_frames(frames)
    if combined.empty:
        return None
    totals = combined.sum(axis=1)
    return MonthStats(
        total_kwh=float(totals.sum()),
        peak_kw=float(combined.to_numpy().max()),
        avg_daily_kwh=float(totals.mean()),
        days_with_data=int(len(combined)),
    )


def available_months(validated: ValidatedSiteData) -> list[MonthSummary]:
    """Months with metered data, most recent first."""
    combined = utils.sum_frames(validated.tenant_frames.values())
    if combined.empty:
        return []
    totals = combined.sum(axis=1)
    idx = pd.DatetimeIndex(combined.index)
    grouped = totals.groupby(idx.to_period("M"))
    counts = grouped.size()
    out = [
        MonthSummary(
            value=str(period),
            label=period.strftime("%b %Y"),
            days_with_data=int(counts[period]),
            total_kwh=float(total),
        )
        for period, total in grouped.sum().items()
    ]
    return sorted(out, key=lambda m: m["value"], reverse=True)
