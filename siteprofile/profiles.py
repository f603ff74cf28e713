from __future__ import annotations
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Optional, Union

import numpy as np

from . import canon, utils
from .ingest import is_empty_payload, parse_raw_frame
from .records import Meter, ShopType, Tenant
from .resample import correct_profile_for_interval, is_usable_profile
from .types import DayFrame

logger = logging.getLogger(__name__)

ProfileKind = Literal["weekday", "weekend"]
RawLookup = Union[Mapping[str, Any], Callable[[str], Any], None]
ShopTypes = Union[Mapping[str, ShopType], Iterable[ShopType], None]


@dataclass
class MeterProfile:
    """Weight-averaged hourly profile of several meters."""

    profile_kw: np.ndarray  # 24 values, kW at the meters' own areas
    kw_per_sqm: np.ndarray  # 24 values, kW per m²


def area_scale(tenant_area: Optional[float], meter_area: Optional[float]) -> float:
    """Ratio that expresses a meter's readings at the tenant's floor area."""
    t = float(tenant_area or 0.0)
    m = float(meter_area or 0.0)
    if t <= 0 or m <= 0:
        return 1.0
    return t / m


def _with_id(meter: Optional[Meter], meter_id: Optional[str]) -> Meter:
    if meter is None:
        return Meter(id=meter_id or "")
    if not meter.id and meter_id:
        return meter.model_copy(update={"id": meter_id})
    return meter


def tenant_meters(tenant: Tenant) -> list[tuple[Meter, float]]:
    """
    The tenant's meters as (meter, weight) pairs with weights summing to 1.

    Multi-meter assignments win over the single scada_import. A meter given
    only by id is kept so its raw data can still be resolved by id.
    """
    pairs: list[tuple[Meter, float]] = []
    if tenant.tenant_meters:
        for tm in tenant.tenant_meters:
            pairs.append((_with_id(tm.meter, tm.scada_import_id), tm.effective_weight))
    elif tenant.scada_import is not None or tenant.scada_import_id:
        pairs.append((_with_id(tenant.scada_import, tenant.scada_import_id), 1.0))

    total = sum(w for _, w in pairs)
    if total <= 0:
        return []
    return [(m, w / total) for m, w in pairs]


def _meter_profile(meter: Meter, kind: ProfileKind) -> Optional[list[float]]:
    if kind == "weekend":
        return meter.load_profile_weekend
    return meter.load_profile_weekday


def averaged_meter_profile(
    meters: Iterable[tuple[Meter, float]], kind: ProfileKind = "weekday"
) -> Optional[MeterProfile]:
    """
    Weighted average of the meters' pre-computed profiles.

    Only meters with a usable profile of the requested kind and a positive
    area take part; weights are renormalised over those. None if no meter
    qualifies.
    """
    valid = [
        (m, w)
        for m, w in meters
        if is_usable_profile(_meter_profile(m, kind)) and m.area > 0
    ]
    if not valid:
        return None
    total = sum(w for _, w in valid)
    profile_kw = np.zeros(canon.HOURS, dtype=float)
    kw_per_sqm = np.zeros(canon.HOURS, dtype=float)
    for m, w in valid:
        corrected = correct_profile_for_interval(
            _meter_profile(m, kind), m.detected_interval_minutes
        )
        share = w / total
        profile_kw += corrected * share
        kw_per_sqm += (corrected / m.area) * share
    return MeterProfile(profile_kw=profile_kw, kw_per_sqm=kw_per_sqm)


def _shop_type_map(shop_types: ShopTypes) -> dict[str, ShopType]:
    if shop_types is None:
        return {}
    if isinstance(shop_types, Mapping):
        return dict(shop_types)
    return {st.id: st for st in shop_types}


def shop_type_for(tenant: Tenant, shop_types: ShopTypes) -> Optional[ShopType]:
    if not tenant.shop_type_id:
        return None
    return _shop_type_map(shop_types).get(tenant.shop_type_id)


def estimate_from_shop_type(
    tenant: Tenant, shop_type: Optional[ShopType], weekend: bool = False
) -> np.ndarray:
    """
    Hourly kW estimate from the tenant's area and shop-type statistics.

    dailyKwh = (monthly override or kWh/m²/month x area) / 30, spread over the
    day by the shop type's percentage profile. Without a shop type a flat
    profile at the default intensity is used.
    """
    pct: list[float] = list(canon.DEFAULT_PROFILE_PERCENT)
    intensity = canon.DEFAULT_KWH_PER_SQM_MONTH
    if shop_type is not None:
        intensity = shop_type.kwh_per_sqm_month or canon.DEFAULT_KWH_PER_SQM_MONTH
        candidate = shop_type.profile_percent(weekend)
        if len(candidate) == canon.HOURS:
            pct = candidate

    monthly_kwh = tenant.monthly_kwh_override or intensity * tenant.area
    daily_kwh = monthly_kwh / canon.DAYS_PER_MONTH
    return daily_kwh * np.asarray(pct, dtype=float) / 100.0


def day_multiplier(days: Iterable[int]) -> float:
    """Mean weekday multiplier over the selected day indices (0=Sunday)."""
    days = list(days)
    if not days:
        return 1.0
    vals = [canon.DAY_MULTIPLIERS[canon.WEEKDAY_NAMES[d % 7]] for d in days]
    return float(np.mean(vals))


def has_profile_data(tenant: Tenant) -> bool:
    """Whether the tenant has a usable pre-computed meter profile."""
    if any(
        tm.meter is not None and is_usable_profile(tm.meter.load_profile_weekday)
        for tm in tenant.tenant_meters
    ):
        return True
    meter = tenant.scada_import
    return meter is not None and is_usable_profile(meter.load_profile_weekday)


def base_profile(tenant: Tenant, shop_types: ShopTypes, weekend: bool = False) -> np.ndarray:
    """
    A tenant's 24-hour kW template before any day-of-week weighting.

    Priority: multi-meter per-m² average x tenant area, then the single
    meter's corrected profile x area ratio, then the shop-type estimate.
    A missing weekend profile falls back to the weekday one.
    """
    area = tenant.area

    if area > 0 and tenant.tenant_meters:
        meters = tenant_meters(tenant)
        prof = averaged_meter_profile(meters, "weekend" if weekend else "weekday")
        if prof is None and weekend:
            prof = averaged_meter_profile(meters, "weekday")
        if prof is not None:
            return prof.kw_per_sqm * area

    meter = tenant.scada_import
    if meter is not None:
        raw = meter.load_profile_weekday
        if weekend and meter.load_profile_weekend:
            raw = meter.load_profile_weekend
        if is_usable_profile(raw):
            corrected = correct_profile_for_interval(raw, meter.detected_interval_minutes)
            return corrected * area_scale(area, meter.area)

    return estimate_from_shop_type(tenant, shop_type_for(tenant, shop_types), weekend)


def template_profile(
    tenant: Tenant, shop_types: ShopTypes, days: Iterable[int] = canon.ALL_DAYS
) -> np.ndarray:
    """
    Representative 24-hour kW profile for a tenant without raw data.

    The weekend template is used only when every selected day is a weekend
    day; the result is weighted by the mean day multiplier of the selection.
    """
    days = list(days)
    weekend = bool(days) and all(d in canon.WEEKEND_DAYS for d in days)
    return base_profile(tenant, shop_types, weekend) * day_multiplier(days)


def resolve_raw(meter: Meter, raw_lookup: RawLookup = None) -> Any:
    """Raw payload for a meter: the lookup by id first, then any inline payload."""
    raw = None
    if raw_lookup is not None and meter.id:
        if isinstance(raw_lookup, Mapping):
            raw = raw_lookup.get(meter.id)
        else:
            raw = raw_lookup(meter.id)
    if is_empty_payload(raw):
        raw = meter.raw_data
    return raw


def tenant_day_frame(tenant: Tenant, raw_lookup: RawLookup = None) -> DayFrame:
    """
    Per-date hourly kW for a tenant, built from its meters' raw samples.

    Each meter is bucketed by hour (energy summed, power averaged), scaled to
    the tenant's area, and the meters reporting on a date are weight-averaged.
    Empty when no meter has parseable raw data.
    """
    frames: dict[str, DayFrame] = {}
    weights: dict[str, float] = {}
    for i, (meter, weight) in enumerate(tenant_meters(tenant)):
        samples = parse_raw_frame(resolve_raw(meter, raw_lookup))
        if samples.empty:
            continue
        hourly = utils.hourly_by_date(samples, power=meter.is_power)
        key = f"{i}:{meter.id}"
        frames[key] = utils.scale_frame(hourly, area_scale(tenant.area, meter.area))
        weights[key] = weight

    if not frames:
        return utils.empty_day_frame()
    out = utils.weighted_mean_frames(frames, weights)
    logger.debug(
        "Tenant %s: %d dated days from %d meter(s)", tenant.id, len(out), len(frames)
    )
    return out
