from __future__ import annotations
import logging
from collections.abc import Mapping
from datetime import time as _time
from enum import Enum
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd

from . import canon
from .types import Sample

logger = logging.getLogger(__name__)

_DATE_RE = r"\d{4}-\d{2}-\d{2}"
_TIME_RE = r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?"


class RawShape(str, Enum):
    """The raw SCADA payload layouts we know how to read."""

    CANONICAL = "canonical"  # [{date, time, value}, ...]
    TIMESTAMPED = "timestamped"  # [{timestamp: "DD Mon YYYY HH:MM", value}, ...]
    CSV_BLOB = "csv_blob"  # [{csvContent: "rdate,rtime,kWh,...\n..."}]


def detect_shape(raw: Any) -> Optional[RawShape]:
    """Classify a raw payload by its first element, or None if unrecognised."""
    if not isinstance(raw, (list, tuple)) or len(raw) == 0:
        return None
    first = raw[0]
    if not isinstance(first, Mapping):
        return None
    if first.get("date") and first.get("time") and "value" in first:
        return RawShape.CANONICAL
    if first.get("timestamp") and "value" in first and not first.get("date"):
        return RawShape.TIMESTAMPED
    content = first.get("csvContent")
    if isinstance(content, str) and content:
        return RawShape.CSV_BLOB
    return None


def _empty_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "date": pd.Series([], dtype="datetime64[ns]"),
            "hour": pd.Series([], dtype=int),
            "minute": pd.Series([], dtype=int),
            "second": pd.Series([], dtype=int),
            "value": pd.Series([], dtype=float),
        }
    )


def _finish(date_str: pd.Series, time_str: pd.Series, value: pd.Series) -> pd.DataFrame:
    """
    Turn string date/time columns plus raw values into the sample frame.

    Rows whose date or time cannot be read, or whose hour is outside 0..23,
    are dropped. Unreadable values count as 0.
    """
    dates = pd.to_datetime(date_str.astype(str), format="ISO8601", errors="coerce")
    parts = time_str.astype(str).str.extract(_TIME_RE)
    hour = pd.to_numeric(parts[0], errors="coerce")
    minute = pd.to_numeric(parts[1], errors="coerce")
    second = pd.to_numeric(parts[2], errors="coerce").fillna(0)
    vals = pd.to_numeric(value, errors="coerce").fillna(0.0).astype(float)

    ok = (
        dates.notna()
        & hour.notna()
        & minute.notna()
        & (hour >= 0)
        & (hour < canon.HOURS)
        & (minute < 60)
        & (second < 60)
    )
    if not ok.any():
        return _empty_frame()
    out = pd.DataFrame(
        {
            "date": dates[ok].dt.normalize(),
            "hour": hour[ok].astype(int),
            "minute": minute[ok].astype(int),
            "second": second[ok].astype(int),
            "value": vals[ok],
        }
    )
    return out.reset_index(drop=True)


def _read_canonical(raw: list) -> pd.DataFrame:
    rows = [r for r in raw if isinstance(r, Mapping)]
    df = pd.DataFrame.from_records(rows).reindex(columns=["date", "time", "value"])
    df = df[df["date"].notna() & df["time"].notna()]
    return _finish(df["date"], df["time"], df["value"])


def _read_timestamped(raw: list) -> pd.DataFrame:
    rows = [r for r in raw if isinstance(r, Mapping)]
    df = pd.DataFrame.from_records(rows).reindex(columns=["timestamp", "value"])
    stamps = df["timestamp"].astype(str).str.strip()
    parts = stamps.str.split(r"\s+", expand=True, regex=True)
    if parts.shape[1] < 4:
        return _empty_frame()
    parts = parts[parts[3].notna()]
    day = parts[0].str.zfill(2)
    # unknown month names fall back to January
    month = parts[1].map(canon.MONTH_MAP).fillna(1).astype(int)
    date_str = parts[2] + "-" + month.map("{:02d}".format) + "-" + day
    return _finish(date_str, parts[3], df.loc[parts.index, "value"])


def _read_csv_blob(raw: list) -> pd.DataFrame:
    lines = pd.Series(raw[0]["csvContent"].split("\n"))
    head = lines.iloc[: canon.CSV_HEADER_SCAN_LINES].str.lower()
    is_header = head.apply(lambda s: any(m in s for m in canon.CSV_HEADER_MARKERS))
    if not is_header.any():
        return _empty_frame()
    header_idx = int(np.argmax(is_header.to_numpy()))

    body = lines.iloc[header_idx + 1 :].str.strip()
    body = body[body != ""]
    if body.empty:
        return _empty_frame()
    cols = body.str.split(",", expand=True)
    if cols.shape[1] < 3:
        return _empty_frame()
    cols = cols[cols[2].notna() & cols[1].fillna("").str.strip().ne("")]
    is_dated = cols[0].str.strip().str.fullmatch(_DATE_RE).fillna(False).astype(bool)
    cols = cols[is_dated]
    return _finish(cols[0].str.strip(), cols[1], cols[2])


_READERS: dict[RawShape, Callable[[list], pd.DataFrame]] = {
    RawShape.CANONICAL: _read_canonical,
    RawShape.TIMESTAMPED: _read_timestamped,
    RawShape.CSV_BLOB: _read_csv_blob,
}


def is_empty_payload(raw: Any) -> bool:
    """True for a missing payload or an empty string, list, tuple or mapping."""
    if raw is None:
        return True
    return isinstance(raw, (str, list, tuple, Mapping)) and len(raw) == 0


def parse_raw_frame(raw: Any) -> pd.DataFrame:
    """
    Parse a raw payload into a sample frame.

    Columns: date (midnight Timestamp), hour, minute, second, value.
    Never raises: an unrecognised or unreadable payload gives an empty frame.
    """
    shape = detect_shape(raw)
    if shape is None:
        if raw is not None:
            logger.debug("Unrecognised raw payload of type %s", type(raw).__name__)
        return _empty_frame()
    try:
        out = _READERS[shape](list(raw))
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.debug("Dropping %s payload that failed to parse: %s", shape.value, e)
        return _empty_frame()
    logger.debug("Parsed %d samples from %s payload", len(out), shape.value)
    return out


def parse_raw_data(raw: Any) -> list[Sample]:
    """Parse a raw payload into an ordered list of Samples (empty if unreadable)."""
    df = parse_raw_frame(raw)
    if df.empty:
        return []
    times = [_time(h, m, s) for h, m, s in zip(df["hour"], df["minute"], df["second"])]
    return [
        Sample(date=d.date(), time=t, value=float(v))
        for d, t, v in zip(df["date"], times, df["value"])
    ]


def to_frame(samples: list[Sample]) -> pd.DataFrame:
    """Inverse of parse_raw_data: build the sample frame from Sample objects."""
    if not samples:
        return _empty_frame()
    return pd.DataFrame(
        {
            "date": pd.to_datetime([s.date for s in samples]),
            "hour": [s.time.hour for s in samples],
            "minute": [s.time.minute for s in samples],
            "second": [s.time.second for s in samples],
            "value": [float(s.value) for s in samples],
        }
    )


def infer_interval_minutes(frame: pd.DataFrame, default: int = 60) -> int:
    """
    Infer the sampling interval from the most common gap between readings
    on the same day, ignoring duplicates.
    """
    if frame.empty:
        return int(default)
    mins = frame["hour"].to_numpy() * 60 + frame["minute"].to_numpy()
    d = pd.DataFrame({"date": frame["date"].to_numpy(), "m": mins})
    d = d.drop_duplicates().sort_values(["date", "m"])
    diffs = d.groupby("date")["m"].diff().dropna().to_numpy()
    diffs = diffs[diffs > 0]
    if len(diffs) == 0:
        return int(default)
    vals, counts = np.unique(np.rint(diffs).astype(int), return_counts=True)
    return int(vals[np.argmax(counts)])


def available_years(frame: pd.DataFrame) -> list[int]:
    if frame.empty:
        return []
    return sorted(int(y) for y in pd.DatetimeIndex(frame["date"]).year.unique())
