"""Eskom-style time-of-use periods by season and day type."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Optional

from . import canon
from .types import TOUPeriod


def _hours(*ranges: tuple[int, int]) -> frozenset[int]:
    out: set[int] = set()
    for start, end in ranges:
        out.update(range(start, end))
    return frozenset(out)


@dataclass(frozen=True)
class DayTypeHours:
    """Peak and standard hours for one day type; everything else is off-peak."""

    peak: frozenset[int] = frozenset()
    standard: frozenset[int] = frozenset()

    def period(self, hour: int) -> TOUPeriod:
        if hour in self.peak:
            return TOUPeriod.PEAK
        if hour in self.standard:
            return TOUPeriod.STANDARD
        return TOUPeriod.OFF_PEAK


@dataclass(frozen=True)
class SeasonHours:
    weekday: DayTypeHours = field(default_factory=DayTypeHours)
    saturday: DayTypeHours = field(default_factory=DayTypeHours)
    sunday: DayTypeHours = field(default_factory=DayTypeHours)


@dataclass(frozen=True)
class TOUSettings:
    high_demand_months: frozenset[int] = frozenset({6, 7, 8})
    high: SeasonHours = field(
        default_factory=lambda: SeasonHours(
            weekday=DayTypeHours(
                peak=_hours((6, 9), (17, 19)),
                standard=_hours((9, 12), (14, 17), (19, 22)),
            ),
            saturday=DayTypeHours(standard=_hours((7, 12))),
        )
    )
    low: SeasonHours = field(
        default_factory=lambda: SeasonHours(
            weekday=DayTypeHours(
                peak=_hours((7, 10), (18, 20)),
                standard=_hours((6, 7), (10, 18), (20, 22)),
            ),
            saturday=DayTypeHours(standard=_hours((7, 12), (18, 20))),
        )
    )

    @classmethod
    def from_dict(cls, d: Mapping) -> "TOUSettings":
        """
        Build settings from a nested mapping such as
        {"high_demand_months": [6, 7, 8],
         "high": {"weekday": {"peak": [[6, 9], [17, 19]], "standard": [...]}, ...},
         "low": {...}}.
        Hour ranges are [start, end). Missing parts keep the defaults.
        """
        base = cls()

        def day(hours_map: Optional[Mapping], fallback: DayTypeHours) -> DayTypeHours:
            if hours_map is None:
                return fallback
            return DayTypeHours(
                peak=_hours(*[tuple(r) for r in hours_map.get("peak", [])]),
                standard=_hours(*[tuple(r) for r in hours_map.get("standard", [])]),
            )

        def season(hours_map: Optional[Mapping], fallback: SeasonHours) -> SeasonHours:
            if hours_map is None:
                return fallback
            return SeasonHours(
                weekday=day(hours_map.get("weekday"), fallback.weekday),
                saturday=day(hours_map.get("saturday"), fallback.saturday),
                sunday=day(hours_map.get("sunday"), fallback.sunday),
            )

        months = d.get("high_demand_months")
        return cls(
            high_demand_months=(
                frozenset(months) if months is not None else base.high_demand_months
            ),
            high=season(d.get("high"), base.high),
            low=season(d.get("low"), base.low),
        )


DEFAULT_TOU_SETTINGS = TOUSettings()


def classify_season(month: Optional[int], settings: Optional[TOUSettings] = None) -> TOUPeriod:
    """HIGH_DEMAND for the winter months (1-12 numbering); LOW_DEMAND otherwise."""
    s = settings or DEFAULT_TOU_SETTINGS
    if month is not None and month in s.high_demand_months:
        return TOUPeriod.HIGH_DEMAND
    return TOUPeriod.LOW_DEMAND


def classify(
    hour: int,
    is_weekend: bool,
    month: Optional[int] = None,
    day_of_week: Optional[int] = None,
    settings: Optional[TOUSettings] = None,
) -> TOUPeriod:
    """
    Time-of-use period for an hour of day.

    is_weekend picks the day type; day_of_week (0=Sunday .. 6=Saturday) only
    tells Sunday from Saturday on a weekend. A weekend with no day_of_week is
    treated as Saturday.
    Without a month the low-demand season applies.
    """
    s = settings or DEFAULT_TOU_SETTINGS
    season = s.high if classify_season(month, s) == TOUPeriod.HIGH_DEMAND else s.low

    if not is_weekend:
        hours = season.weekday
    elif day_of_week == 0:
        hours = season.sunday
    else:
        hours = season.saturday

    return hours.period(int(hour) % canon.HOURS)


def day_periods(
    is_weekend: bool,
    month: Optional[int] = None,
    day_of_week: Optional[int] = None,
    settings: Optional[TOUSettings] = None,
) -> list[TOUPeriod]:
    """The 24-hour period strip for one day."""
    return [
        classify(h, is_weekend, month=month, day_of_week=day_of_week, settings=settings)
        for h in range(canon.HOURS)
    ]
