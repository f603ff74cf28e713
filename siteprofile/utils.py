# siteprofile/utils.py
from __future__ import annotations
from datetime import date as _date
from typing import Iterable, Mapping, cast

import numpy as np
import pandas as pd

from . import canon
from .types import DayFrame, DisplayUnit


def day_index(d: _date | pd.Timestamp) -> int:
    """Day of week as 0=Sunday .. 6=Saturday."""
    return (d.weekday() + 1) % 7


def day_indices(idx: pd.DatetimeIndex) -> np.ndarray:
    return (np.asarray(idx.dayofweek) + 1) % 7


def is_weekend(d: _date | pd.Timestamp) -> bool:
    return day_index(d) in canon.WEEKEND_DAYS


def hour_label(h: int) -> str:
    return canon.HOUR_LABELS[h]


def unit_multiplier(display_unit: DisplayUnit = "kw", power_factor: float = 1.0) -> float:
    """kW -> display unit. kVA = kW / power factor."""
    if display_unit == "kw" or power_factor <= 0:
        return 1.0
    return 1.0 / power_factor


def empty_day_frame() -> DayFrame:
    """Return an empty DayFrame with the date index and 24 hour columns."""
    idx = pd.DatetimeIndex([], name=canon.INDEX_NAME)
    out = pd.DataFrame(columns=canon.HOUR_COLUMNS, index=idx, dtype=float)
    out.__class__ = DayFrame
    return cast(DayFrame, out)


def as_day_frame(df: pd.DataFrame) -> DayFrame:
    """Coerce a date x hour frame to canonical DayFrame layout."""
    if df.empty:
        return empty_day_frame()
    out = df.reindex(columns=canon.HOUR_COLUMNS, fill_value=0.0).fillna(0.0)
    out = out.astype(float)
    out.index = pd.DatetimeIndex(out.index).normalize()
    out.index.name = canon.INDEX_NAME
    out.columns = canon.HOUR_COLUMNS
    out = out.sort_index()
    out.__class__ = DayFrame
    return cast(DayFrame, out)


def hourly_by_date(frame: pd.DataFrame, power: bool = False) -> DayFrame:
    """
    Bucket a sample frame (date, hour, value) into one 24-hour row per date.

    Energy readings (kWh per interval) are summed within each hour, which gives
    the hour's average kW. Power readings (kW) are averaged. Hours with no
    readings are 0.
    """
    if frame.empty:
        return empty_day_frame()
    how = "mean" if power else "sum"
    out = (
        frame.groupby(["date", "hour"])["value"]
        .agg(how)
        .unstack("hour")
        .fillna(0.0)
    )
    return as_day_frame(out)


def scale_frame(frame: DayFrame, factor: float) -> DayFrame:
    return as_day_frame(frame * factor)


def sum_frames(frames: Iterable[pd.DataFrame], how: str = "outer") -> DayFrame:
    """
    Add day frames hour by hour.

    how='outer' keeps every date any frame has (missing frames contribute 0);
    how='inner' keeps only dates present in all frames.
    """
    frames = [f for f in frames if not f.empty]
    if not frames:
        return empty_day_frame()
    if how == "inner":
        common = frames[0].index
        for f in frames[1:]:
            common = common.intersection(f.index)
        frames = [f.loc[common] for f in frames]
    total = frames[0].copy()
    for f in frames[1:]:
        total = total.add(f, fill_value=0.0)
    return as_day_frame(total)


def weighted_mean_frames(frames: Mapping[str, pd.DataFrame], weights: Mapping[str, float]) -> DayFrame:
    """
    Weighted average of day frames, per date over the frames that have that date.

    Weights are renormalised per date so a meter missing a day does not drag
    the average towards zero.
    """
    frames = {k: f for k, f in frames.items() if not f.empty}
    if not frames:
        return empty_day_frame()
    if len(frames) == 1:
        return as_day_frame(next(iter(frames.values())))
    items = iter(frames.items())
    key, f = next(items)
    w = float(weights.get(key, 1.0))
    num = f * w
    den = pd.Series(w, index=f.index)
    for key, f in items:
        w = float(weights.get(key, 1.0))
        num = num.add(f * w, fill_value=0.0)
        den = den.add(pd.Series(w, index=f.index), fill_value=0.0)
    return as_day_frame(num.div(den, axis=0))


def month_label(ts: pd.Timestamp) -> str:
    return ts.strftime("%Y-%m")


def frame_years(frame: pd.DataFrame) -> list[int]:
    if frame.empty:
        return []
    return sorted(int(y) for y in pd.DatetimeIndex(frame.index).year.unique())
