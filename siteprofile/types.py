from __future__ import annotations
from typing import TYPE_CHECKING, TypedDict, Literal, List, Dict, Optional
from dataclasses import dataclass, field
from datetime import date as _date, time as _time
from enum import Enum

import pandas as pd

from . import canon
from .exceptions import ConfigError, require

if TYPE_CHECKING:
    from .records import Tenant

DisplayUnit = Literal["kw", "kva"]
StackMode = Literal["avg", "max", "min"]
DateCoverage = Literal["union", "overlap", "intersection"]
IrradianceSource = Literal["static", "solcast"]


class TOUPeriod(str, Enum):
    PEAK = "peak"
    STANDARD = "standard"
    OFF_PEAK = "off-peak"
    HIGH_DEMAND = "high-demand"
    LOW_DEMAND = "low-demand"

    @property
    def label(self) -> str:
        return {
            "peak": "Peak",
            "standard": "Standard",
            "off-peak": "Off-Peak",
            "high-demand": "High-Demand",
            "low-demand": "Low-Demand",
        }[self.value]


@dataclass(frozen=True)
class Sample:
    date: _date
    time: _time
    value: float

    @property
    def hour(self) -> int:
        return self.time.hour


# Day frame
class DayFrame(pd.DataFrame):
    """
    Hourly kW values for many calendar days.

    Expected:
      - DatetimeIndex named 'date', naive, normalised to midnight
      - Integer columns 0..23 (hour of day, local time), values in kW
    """

    @property
    def _constructor(self):
        return DayFrame

    @property
    def daily_totals(self) -> pd.Series:
        return self[canon.HOUR_COLUMNS].sum(axis=1)

    @property
    def dates(self) -> list[_date]:
        return [ts.date() for ts in pd.DatetimeIndex(self.index)]


# Chart-ready payloads
class EnvelopePoint(TypedDict):
    hour: str
    min: float
    max: float
    avg: float


class TenantKey(TypedDict):
    id: str
    label: str
    color: str


class ChartPoint(TypedDict, total=False):
    hour: str
    total: float
    pvGeneration: float
    pvDcOutput: float
    pvClipping: float
    pv1to1Baseline: float
    netLoad: float
    gridImport: float
    gridExport: float
    batteryCharge: float
    batteryDischarge: float
    batterySoC: float
    gridImportWithBattery: float
    temperature: float


@dataclass
class StackedResult:
    data: List[Dict[str, float | str]]
    tenant_keys: List[TenantKey]


@dataclass
class AverageDay:
    chart: List[Dict[str, float | str]]
    weekday_daily_kwh: float
    weekend_daily_kwh: float
    validated_date_count: int


@dataclass
class ValidatedSiteData:
    site: DayFrame
    tenant_frames: Dict[str, DayFrame]
    tenant_labels: Dict[str, str]
    metered_tenant_ids: List[str]
    non_metered_tenants: List["Tenant"]
    scada_count: int
    estimated_count: int
    available_years: List[int]
    outlier_count: int = 0

    @property
    def validated_date_count(self) -> int:
        return len(self.site.index)

    @property
    def is_empty(self) -> bool:
        return self.site.empty


class LoadStats(TypedDict):
    total_daily: float
    peak_kw: float
    peak_hour: int
    avg_hourly: float
    load_factor_pct: float


class PVStats(TypedDict):
    total_generation: float
    self_consumption: float
    self_consumption_rate: float
    solar_coverage: float


class OverPanelingStats(TypedDict):
    total_dc_output: float
    total_ac_output: float
    total_1to1_baseline: float
    additional_kwh: float
    percent_gain: float
    total_clipping: float
    clipping_percent: float
    monthly_additional_kwh: float
    monthly_clipping: float
    monthly_1to1: float
    monthly_with_oversizing: float
    annual_additional_kwh: float
    annual_clipping: float
    annual_1to1: float
    annual_with_oversizing: float


class MonthSummary(TypedDict):
    value: str  # "YYYY-MM"
    label: str  # "Jan 2025"
    days_with_data: int
    total_kwh: float


class MonthStats(TypedDict):
    total_kwh: float
    peak_kw: float
    avg_daily_kwh: float
    days_with_data: int


## Simulation configuration
@dataclass(frozen=True)
class SimulationConfig:
    inverter_ac_kva: float = 0.0  # AC limit of the inverter(s)
    dc_ac_ratio: float = 1.0  # DC nameplate / AC limit
    battery_capacity_kwh: float = 0.0
    battery_power_kw: float = 0.0
    system_losses: float = canon.DEFAULT_SYSTEM_LOSSES
    power_factor: float = 0.9
    diversity_factor: float = 1.0
    irradiance_source: IrradianceSource = "static"
    display_unit: DisplayUnit = "kw"

    def __post_init__(self):
        require(self.inverter_ac_kva >= 0, "inverter_ac_kva must be >= 0", ConfigError)
        require(self.dc_ac_ratio > 0, "dc_ac_ratio must be > 0", ConfigError)
        require(
            self.battery_capacity_kwh >= 0 and self.battery_power_kw >= 0,
            "battery capacity and power must be >= 0",
            ConfigError,
        )
        require(
            0.0 <= self.system_losses < 1.0,
            "system_losses must be a fraction in [0, 1)",
            ConfigError,
        )
        require(
            0.0 < self.power_factor <= 1.0,
            "power_factor must be in (0, 1]",
            ConfigError,
        )
        require(self.diversity_factor > 0, "diversity_factor must be > 0", ConfigError)
        require(
            self.display_unit in ("kw", "kva"),
            f"Unknown display_unit '{self.display_unit}'",
            ConfigError,
        )
        require(
            self.irradiance_source in ("static", "solcast"),
            f"Unknown irradiance_source '{self.irradiance_source}'",
            ConfigError,
        )

    @property
    def dc_capacity_kwp(self) -> float:
        return self.inverter_ac_kva * self.dc_ac_ratio

    @property
    def pv_enabled(self) -> bool:
        return self.inverter_ac_kva > 0

    @property
    def battery_enabled(self) -> bool:
        return self.battery_capacity_kwh > 0 and self.battery_power_kw > 0

    @property
    def unit_multiplier(self) -> float:
        return 1.0 if self.display_unit == "kw" else 1.0 / self.power_factor


@dataclass(frozen=True)
class DateFilter:
    """Which validated days feed the statistical views."""

    year_from: Optional[int] = None
    year_to: Optional[int] = None
    days: frozenset[int] = field(default_factory=lambda: canon.ALL_DAYS)
    months: Optional[frozenset[int]] = None  # 1..12; None = no month constraint

    def __post_init__(self):
        # accept any iterable; stored frozen so filters can key a cache
        object.__setattr__(self, "days", frozenset(self.days))
        if self.months is not None:
            object.__setattr__(self, "months", frozenset(self.months))
        require(
            all(0 <= d <= 6 for d in self.days),
            "days must use 0=Sunday .. 6=Saturday",
            ConfigError,
        )
        require(
            self.months is None or all(1 <= m <= 12 for m in self.months),
            "months must be 1..12",
            ConfigError,
        )

    @property
    def all_weekend(self) -> bool:
        return bool(self.days) and set(self.days) <= canon.WEEKEND_DAYS
