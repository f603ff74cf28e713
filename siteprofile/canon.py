from __future__ import annotations
from typing import Final, Dict

HOURS: Final[int] = 24
INDEX_NAME: Final[str] = "date"
HOUR_COLUMNS: Final[list[int]] = list(range(HOURS))
HOUR_LABELS: Final[list[str]] = [f"{h:02d}:00" for h in range(HOURS)]

# Profile lengths that map cleanly onto an hourly day (60/30/15 minute)
USABLE_PROFILE_LENGTHS: Final[tuple[int, ...]] = (24, 48, 96)
SUPPORTED_INTERVALS_MIN: Final[tuple[int, ...]] = (15, 30, 60)

# Raw SCADA payloads
CSV_HEADER_MARKERS: Final[tuple[str, ...]] = ("rdate", "date")
CSV_HEADER_SCAN_LINES: Final[int] = 10
MONTH_MAP: Final[Dict[str, int]] = {
    "Jan": 1,
    "Feb": 2,
    "Mar": 3,
    "Apr": 4,
    "May": 5,
    "Jun": 6,
    "Jul": 7,
    "Aug": 8,
    "Sep": 9,
    "Oct": 10,
    "Nov": 11,
    "Dec": 12,
}

# value_unit tags on a meter; anything else falls back to energy semantics
POWER_UNITS: Final[frozenset[str]] = frozenset({"kw", "kva"})
ENERGY_UNITS: Final[frozenset[str]] = frozenset({"kwh", "kvah"})

# Shop-type estimation
DEFAULT_KWH_PER_SQM_MONTH: Final[float] = 50.0
DAYS_PER_MONTH: Final[int] = 30
DEFAULT_PROFILE_PERCENT: Final[list[float]] = [100.0 / HOURS] * HOURS

# Day indices follow the 0=Sunday .. 6=Saturday convention used by the UI
WEEKDAY_NAMES: Final[list[str]] = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]
WEEKEND_DAYS: Final[frozenset[int]] = frozenset({0, 6})
WEEKDAYS: Final[frozenset[int]] = frozenset({1, 2, 3, 4, 5})
ALL_DAYS: Final[frozenset[int]] = frozenset(range(7))
ALL_MONTHS: Final[frozenset[int]] = frozenset(range(1, 13))
DAY_MULTIPLIERS: Final[Dict[str, float]] = {
    "Monday": 0.92,
    "Tuesday": 0.96,
    "Wednesday": 1.00,
    "Thursday": 1.04,
    "Friday": 1.08,
    "Saturday": 1.05,
    "Sunday": 0.88,
}

# Site validation
SITE_OUTAGE_THRESHOLD_KW: Final[float] = 75.0
OUTLIER_MIN_DAYS: Final[int] = 20
OUTLIER_IQR_MULTIPLIER: Final[float] = 3.0
OUTLIER_MEDIAN_MULTIPLIER: Final[float] = 5.0
TENANT_LABEL_MAX: Final[int] = 15

# Envelope
ENVELOPE_LOWER_PERCENTILE: Final[float] = 1.0
ENVELOPE_UPPER_PERCENTILE: Final[float] = 99.0

# PV / battery
TEMP_COEFFICIENT: Final[float] = 0.004
REFERENCE_TEMP_C: Final[float] = 25.0
DEFAULT_SYSTEM_LOSSES: Final[float] = 0.14
BATTERY_INITIAL_SOC: Final[float] = 0.20
BATTERY_MIN_SOC: Final[float] = 0.10
BATTERY_MAX_SOC: Final[float] = 0.95
STATIC_PV_PROFILE: Final[list[float]] = [
    0.0, 0.0, 0.0, 0.0, 0.0, 0.02, 0.08, 0.2, 0.38, 0.58, 0.78, 0.92,
    1.0, 0.98, 0.9, 0.75, 0.55, 0.32, 0.12, 0.02, 0.0, 0.0, 0.0, 0.0,
]  # fmt: skip
STATIC_DAILY_GHI_KWH: Final[float] = 5.5

METER_COLORS: Final[list[str]] = [
    "#6366f1", "#f59e0b", "#10b981", "#ef4444", "#8b5cf6",
    "#ec4899", "#14b8a6", "#f97316", "#3b82f6", "#84cc16",
    "#a855f7", "#06b6d4", "#d946ef", "#eab308", "#22d3ee",
    "#f43f5e", "#0ea5e9", "#65a30d", "#e11d48", "#7c3aed",
]  # fmt: skip
