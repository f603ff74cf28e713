from __future__ import annotations
from typing import Optional, Sequence

import numpy as np

from . import canon
from .types import LoadStats, OverPanelingStats, PVStats

DAYS_PER_YEAR = 365


def _series(chart: Sequence[dict], key: str) -> np.ndarray:
    return np.array([float(r.get(key) or 0.0) for r in chart], dtype=float)


def load_stats(chart: Sequence[dict]) -> LoadStats:
    """Daily energy, peak, average hourly demand and load factor of a 24-point chart."""
    total = _series(chart, "total")
    total_daily = float(total.sum())
    avg_hourly = total_daily / canon.HOURS
    if len(total) and total.max() > 0:
        peak_hour = int(np.argmax(total))
        peak_kw = float(total[peak_hour])
    else:
        peak_hour, peak_kw = 0, 0.0
    return LoadStats(
        total_daily=total_daily,
        peak_kw=peak_kw,
        peak_hour=peak_hour,
        avg_hourly=avg_hourly,
        load_factor_pct=(avg_hourly / peak_kw * 100.0) if peak_kw > 0 else 0.0,
    )


def pv_stats(chart: Sequence[dict]) -> Optional[PVStats]:
    """Generation and self-consumption; None when the chart carries no PV."""
    if not any("pvGeneration" in r for r in chart):
        return None
    generation = float(_series(chart, "pvGeneration").sum())
    exported = float(_series(chart, "gridExport").sum())
    total_daily = float(_series(chart, "total").sum())
    self_consumption = generation - exported
    return PVStats(
        total_generation=generation,
        self_consumption=self_consumption,
        self_consumption_rate=(self_consumption / generation * 100.0) if generation > 0 else 0.0,
        solar_coverage=(self_consumption / total_daily * 100.0) if total_daily > 0 else 0.0,
    )


def overpaneling_stats(chart: Sequence[dict], dc_ac_ratio: float) -> Optional[OverPanelingStats]:
    """
    Gain and clipping of a DC-oversized array against a 1:1 system, with
    monthly (x30) and annual (x365) extrapolations. None unless the chart has
    PV and the ratio is above 1.
    """
    if dc_ac_ratio <= 1.0 or not any("pvGeneration" in r for r in chart):
        return None
    dc = float(_series(chart, "pvDcOutput").sum())
    ac = float(_series(chart, "pvGeneration").sum())
    clipping = float(_series(chart, "pvClipping").sum())
    baseline = float(_series(chart, "pv1to1Baseline").sum())
    additional = ac - baseline
    month, year = canon.DAYS_PER_MONTH, DAYS_PER_YEAR
    return OverPanelingStats(
        total_dc_output=dc,
        total_ac_output=ac,
        total_1to1_baseline=baseline,
        additional_kwh=additional,
        percent_gain=(additional / baseline * 100.0) if baseline > 0 else 0.0,
        total_clipping=clipping,
        clipping_percent=(clipping / dc * 100.0) if dc > 0 else 0.0,
        monthly_additional_kwh=additional * month,
        monthly_clipping=clipping * month,
        monthly_1to1=baseline * month,
        monthly_with_oversizing=ac * month,
        annual_additional_kwh=additional * year,
        annual_clipping=clipping * year,
        annual_1to1=baseline * year,
        annual_with_oversizing=ac * year,
    )
