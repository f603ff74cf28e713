"""Collaborator records: tenants, meters and shop types as supplied by storage."""

from __future__ import annotations
from typing import Any, Iterable, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from . import canon
from .exceptions import RecordError


class Meter(BaseModel):
    """One SCADA import. Samples are immutable once imported."""

    id: str = ""  # joined rows may omit it; the owning scada_import_id stands in
    shop_name: Optional[str] = None
    area_sqm: Optional[float] = None
    detected_interval_minutes: Optional[int] = None
    value_unit: Optional[str] = None  # "kWh" (energy) | "kW" (power); None = energy
    load_profile_weekday: Optional[list[float]] = None
    load_profile_weekend: Optional[list[float]] = None
    raw_data: Any = None  # inline payload; usually resolved on demand by id
    model_config = {"frozen": True}

    @property
    def area(self) -> float:
        return float(self.area_sqm or 0.0)

    @property
    def is_power(self) -> bool:
        return (self.value_unit or "").strip().lower() in canon.POWER_UNITS


class TenantMeter(BaseModel):
    scada_import_id: str
    weight: Optional[float] = None
    # storage rows embed the joined import as "scada_imports"
    meter: Optional[Meter] = Field(
        default=None, validation_alias=AliasChoices("meter", "scada_imports")
    )
    model_config = {"frozen": True}

    @property
    def effective_weight(self) -> float:
        # unset and zero weights both mean "equal share"
        return float(self.weight or 1.0)


class ShopType(BaseModel):
    id: str
    name: str = ""
    kwh_per_sqm_month: float = canon.DEFAULT_KWH_PER_SQM_MONTH
    load_profile_weekday: list[float] = Field(
        default_factory=lambda: list(canon.DEFAULT_PROFILE_PERCENT)
    )
    load_profile_weekend: Optional[list[float]] = None
    model_config = {"frozen": True}

    def profile_percent(self, weekend: bool) -> list[float]:
        if weekend and self.load_profile_weekend:
            return list(self.load_profile_weekend)
        return list(self.load_profile_weekday)


class Tenant(BaseModel):
    id: str
    name: str = ""
    area_sqm: Optional[float] = None
    scada_import_id: Optional[str] = None
    scada_import: Optional[Meter] = Field(
        default=None, validation_alias=AliasChoices("scada_import", "scada_imports")
    )
    tenant_meters: list[TenantMeter] = Field(default_factory=list)
    shop_type_id: Optional[str] = None
    monthly_kwh_override: Optional[float] = None
    include_in_load_profile: Optional[bool] = None
    model_config = {"frozen": True}

    @property
    def area(self) -> float:
        return float(self.area_sqm or 0.0)

    @property
    def included(self) -> bool:
        return self.include_in_load_profile is not False

    @property
    def label(self) -> str:
        name = self.name or self.id
        if len(name) > canon.TENANT_LABEL_MAX:
            return name[: canon.TENANT_LABEL_MAX] + "…"
        return name


def _parse(model: type[BaseModel], records: Iterable[dict], kind: str) -> list:
    out = []
    for i, rec in enumerate(records):
        try:
            out.append(model.model_validate(rec))
        except ValidationError as e:
            raise RecordError(f"Invalid {kind} record at position {i}: {e}") from e
    return out


def parse_tenants(records: Iterable[dict]) -> list[Tenant]:
    """Validate raw tenant dicts (e.g. rows from storage) into Tenant models."""
    return _parse(Tenant, records, "tenant")


def parse_shop_types(records: Iterable[dict]) -> list[ShopType]:
    return _parse(ShopType, records, "shop type")


