from __future__ import annotations
from typing import Optional, Sequence

import numpy as np

from . import canon


def is_usable_profile(profile: Optional[Sequence[float]]) -> bool:
    """A pre-computed profile is usable when it is 60, 30 or 15 minute resolution."""
    return profile is not None and len(profile) in canon.USABLE_PROFILE_LENGTHS


def correct_profile_for_interval(
    profile: Sequence[float], interval_minutes: Optional[int] = None
) -> np.ndarray:
    """
    Return 24 average-kW values from an hourly-or-finer profile.

    - 48 values: 30-minute power readings, averaged in pairs.
    - 96 values: 15-minute power readings, averaged in fours.
    - 24 values with interval 30/15: sub-hourly readings that were summed into
      hourly buckets upstream; divided by 2/4 to undo the sum.
    - 24 values otherwise: already hourly.
    - Any other length: remapped onto 24 buckets by averaging.
    """
    arr = np.asarray(profile, dtype=float)
    n = len(arr)
    if n == 48:
        return arr.reshape(canon.HOURS, 2).mean(axis=1)
    if n == 96:
        return arr.reshape(canon.HOURS, 4).mean(axis=1)
    if n == canon.HOURS:
        if interval_minutes == 30:
            return arr / 2.0
        if interval_minutes == 15:
            return arr / 4.0
        return arr.copy()
    return remap_to_hours(arr)


def remap_to_hours(arr: np.ndarray) -> np.ndarray:
    """Bucket an arbitrary-length series onto 24 hours; empty buckets are 0."""
    out = np.zeros(canon.HOURS, dtype=float)
    n = len(arr)
    if n == 0:
        return out
    ratio = n / canon.HOURS
    for h in range(canon.HOURS):
        start = int(np.floor(h * ratio))
        end = int(np.floor((h + 1) * ratio))
        if end > start:
            out[h] = arr[start:end].mean()
    return out
