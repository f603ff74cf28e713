from __future__ import annotations
import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from . import utils
from .config import AggregationConfig
from .profiles import RawLookup, has_profile_data, tenant_day_frame
from .records import Tenant
from .types import DateCoverage, DayFrame, ValidatedSiteData

logger = logging.getLogger(__name__)


def remove_outlier_days(
    frame: DayFrame, config: Optional[AggregationConfig] = None
) -> tuple[DayFrame, int]:
    """
    Drop extreme-spike days from one tenant's series.

    Needs at least `outlier_min_days` days. A day goes only if its total is
    above both Q3 + k*IQR and m x median, quartiles taken by sorted index
    floor(n*q). Returns (filtered frame, removed count).
    """
    cfg = config or AggregationConfig()
    n = len(frame)
    if n < cfg.outlier_min_days:
        return frame, 0

    totals = frame.sum(axis=1).to_numpy()
    ordered = np.sort(totals)
    median = ordered[int(np.floor(n * 0.5))]
    q1 = ordered[int(np.floor(n * 0.25))]
    q3 = ordered[int(np.floor(n * 0.75))]
    upper_fence = q3 + cfg.outlier_iqr_multiplier * (q3 - q1)
    median_gate = median * cfg.outlier_median_multiplier

    spikes = (totals > upper_fence) & (totals > median_gate)
    removed = int(spikes.sum())
    if removed == 0:
        return frame, 0
    return utils.as_day_frame(frame.loc[~spikes]), removed


def covered_dates(frames: Iterable[DayFrame], mode: DateCoverage = "union") -> pd.DatetimeIndex:
    """
    Dates the site series is built over.

    union: every date any tenant reports.
    overlap: union restricted to [latest first date, earliest last date].
    intersection: only dates every tenant reports.
    """
    indexes = [pd.DatetimeIndex(f.index) for f in frames if not f.empty]
    if not indexes:
        return pd.DatetimeIndex([], name="date")

    if mode == "intersection":
        out = indexes[0]
        for idx in indexes[1:]:
            out = out.intersection(idx)
        return out.sort_values()

    out = indexes[0]
    for idx in indexes[1:]:
        out = out.union(idx)
    if mode == "overlap":
        start = max(idx.min() for idx in indexes)
        end = min(idx.max() for idx in indexes)
        out = out[(out >= start) & (out <= end)]
    return out.sort_values()


def apply_outage_filter(site: DayFrame, threshold_kw: float) -> DayFrame:
    """Drop days whose 24-hour total is below the site outage threshold."""
    if site.empty:
        return site
    keep = site.sum(axis=1) >= threshold_kw
    return utils.as_day_frame(site.loc[keep])


def validate_site_data(
    tenants: Iterable[Tenant],
    raw_lookup: RawLookup = None,
    config: Optional[AggregationConfig] = None,
) -> ValidatedSiteData:
    """
    Build the validated site-level series from every included tenant's raw data.

    Tenants without parseable raw data are returned as non-metered so the
    caller can add their template contribution.
    """
    cfg = config or AggregationConfig()
    included = [t for t in tenants if t.included]

    tenant_frames: dict[str, DayFrame] = {}
    tenant_labels: dict[str, str] = {}
    years: set[int] = set()
    outliers = 0

    for tenant in included:
        tenant_labels[tenant.id] = tenant.label
        frame = tenant_day_frame(tenant, raw_lookup)
        if frame.empty:
            continue
        years.update(utils.frame_years(frame))
        frame, removed = remove_outlier_days(frame, cfg)
        if removed:
            logger.debug("Tenant %s: removed %d outlier day(s)", tenant.id, removed)
            outliers += removed
        if not frame.empty:
            tenant_frames[tenant.id] = frame

    metered_ids = list(tenant_frames)
    non_metered = [t for t in included if t.id not in tenant_frames]
    with_profiles = sum(1 for t in non_metered if has_profile_data(t))

    dates = covered_dates(tenant_frames.values(), cfg.date_coverage)
    site = utils.sum_frames(f.reindex(f.index.intersection(dates)) for f in tenant_frames.values())
    before = len(site)
    site = apply_outage_filter(site, cfg.outage_threshold_kw)

    logger.info(
        "Validated %d of %d site day(s) from %d metered tenant(s); %d outlier day(s) removed",
        len(site),
        before,
        len(metered_ids),
        outliers,
    )
    return ValidatedSiteData(
        site=site,
        tenant_frames=tenant_frames,
        tenant_labels=tenant_labels,
        metered_tenant_ids=metered_ids,
        non_metered_tenants=non_metered,
        scada_count=len(metered_ids) + with_profiles,
        estimated_count=len(non_metered) - with_profiles,
        available_years=sorted(years),
        outlier_count=outliers,
    )
