from __future__ import annotations

from dataclasses import dataclass, field

from . import canon
from .exceptions import ConfigError, require
from .types import DateCoverage


@dataclass
class AggregationConfig:
    # Site outage filter: drop days whose 24h total (sum of hourly kW) is below this
    outage_threshold_kw: float = canon.SITE_OUTAGE_THRESHOLD_KW

    # Per-tenant outlier filter
    outlier_min_days: int = canon.OUTLIER_MIN_DAYS
    outlier_iqr_multiplier: float = canon.OUTLIER_IQR_MULTIPLIER
    outlier_median_multiplier: float = canon.OUTLIER_MEDIAN_MULTIPLIER

    # Which dates survive when tenants report over different ranges
    date_coverage: DateCoverage = "union"

    def __post_init__(self):
        require(self.outage_threshold_kw >= 0, "outage_threshold_kw must be >= 0", ConfigError)
        require(self.outlier_min_days >= 1, "outlier_min_days must be >= 1", ConfigError)
        require(
            self.date_coverage in ("union", "overlap", "intersection"),
            f"Unknown date_coverage '{self.date_coverage}'",
            ConfigError,
        )


@dataclass
class EnvelopeConfig:
    lower_percentile: float = canon.ENVELOPE_LOWER_PERCENTILE
    upper_percentile: float = canon.ENVELOPE_UPPER_PERCENTILE

    def __post_init__(self):
        require(
            0.0 <= self.lower_percentile <= self.upper_percentile <= 100.0,
            "percentiles must satisfy 0 <= lower <= upper <= 100",
            ConfigError,
        )


@dataclass
class SiteProfileConfig:
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    envelope: EnvelopeConfig = field(default_factory=EnvelopeConfig)


def default_config() -> SiteProfileConfig:
    return SiteProfileConfig()
