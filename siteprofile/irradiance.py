"""Irradiance profiles for the PV simulator: a static clear-day curve or a Solcast forecast.

The fetch is the only network I/O in the library and runs before the core
pipeline; everything downstream sees an IrradianceProfile.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional
from zoneinfo import ZoneInfo

import httpx
import numpy as np
import pandas as pd

from . import canon
from .exceptions import IrradianceError, IrradianceQuotaError
from .types import IrradianceSource

logger = logging.getLogger(__name__)

SOLCAST_URL = "https://api.solcast.com.au/data/forecast/radiation_and_weather"
SOLCAST_OUTPUT_PARAMETERS = ("ghi", "dni", "dhi", "air_temp", "cloud_opacity", "azimuth", "zenith")
DEFAULT_TZ = "Africa/Johannesburg"
STATIC_PEAK_GHI = 1000.0


@dataclass
class IrradianceProfile:
    normalized: list[float]  # 24 values, 0..1, peak hour = 1
    hourly_ghi: list[float]  # W/m²
    peak_ghi: float
    daily_ghi_kwh: float  # kWh/m²/day
    peak_sun_hours: float
    hourly_temp: list[float]  # °C
    source: IrradianceSource = "static"
    fetched_at: Optional[datetime] = None
    extras: dict[str, list[float]] = field(default_factory=dict)  # dni, dhi, cloud_opacity

    @property
    def avg_temp(self) -> float:
        return float(np.mean(self.hourly_temp)) if self.hourly_temp else canon.REFERENCE_TEMP_C


def static_profile() -> IrradianceProfile:
    """Typical clear-day curve for South African sites at 25 °C."""
    norm = list(canon.STATIC_PV_PROFILE)
    return IrradianceProfile(
        normalized=norm,
        hourly_ghi=[v * STATIC_PEAK_GHI for v in norm],
        peak_ghi=STATIC_PEAK_GHI,
        daily_ghi_kwh=canon.STATIC_DAILY_GHI_KWH,
        peak_sun_hours=canon.STATIC_DAILY_GHI_KWH,
        hourly_temp=[canon.REFERENCE_TEMP_C] * canon.HOURS,
        source="static",
    )


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name in df:
        return pd.to_numeric(df[name], errors="coerce")
    return pd.Series(np.nan, index=df.index, dtype=float)


def _forecast_frame(records: Iterable[Mapping[str, Any]], tz: Optional[str]) -> pd.DataFrame:
    df = pd.DataFrame.from_records(list(records))
    if df.empty or "period_end" not in df:
        return pd.DataFrame()
    stamps = pd.to_datetime(df["period_end"], utc=True, errors="coerce")
    if tz:
        stamps = stamps.dt.tz_convert(ZoneInfo(tz))
    df = df.assign(period_end=stamps).dropna(subset=["period_end"])
    for col in ("ghi", "dni", "dhi", "cloud_opacity"):
        df[col] = _column(df, col).fillna(0.0)
    # missing or zero temperatures read as the reference temperature
    temp = _column(df, "air_temp")
    df["air_temp"] = temp.where(temp.notna() & (temp != 0), canon.REFERENCE_TEMP_C)
    return df


def from_solcast_forecasts(
    records: Iterable[Mapping[str, Any]], tz: Optional[str] = DEFAULT_TZ
) -> IrradianceProfile:
    """
    Reduce Solcast forecast periods to one representative day.

    Periods are grouped by the local hour of period_end and averaged; hours
    with no period read as 0 W/m² at 25 °C. The curve is normalised by its
    peak, and peak sun hours equal the daily GHI in kWh/m².
    """
    df = _forecast_frame(records, tz)
    if df.empty:
        raise IrradianceError("Solcast response contained no forecast periods")

    hourly = (
        df.groupby(df["period_end"].dt.hour)[["ghi", "dni", "dhi", "air_temp", "cloud_opacity"]]
        .mean()
        .reindex(canon.HOUR_COLUMNS)
    )
    hourly["air_temp"] = hourly["air_temp"].fillna(canon.REFERENCE_TEMP_C)
    hourly = hourly.fillna(0.0)

    ghi = hourly["ghi"].to_numpy()
    peak = float(ghi.max())
    normalized = ghi / peak if peak > 0 else np.zeros_like(ghi)
    daily_kwh = float(ghi.sum()) / 1000.0

    return IrradianceProfile(
        normalized=normalized.tolist(),
        hourly_ghi=ghi.tolist(),
        peak_ghi=peak,
        daily_ghi_kwh=daily_kwh,
        peak_sun_hours=daily_kwh,
        hourly_temp=hourly["air_temp"].tolist(),
        source="solcast",
        fetched_at=datetime.now(),
        extras={c: hourly[c].tolist() for c in ("dni", "dhi", "cloud_opacity")},
    )


def daily_summaries(records: Iterable[Mapping[str, Any]], tz: Optional[str] = None) -> list[dict]:
    """Per-date GHI/DNI/DHI totals (kWh/m²), temperature range and peak sun hours."""
    df = _forecast_frame(records, tz)
    if df.empty:
        return []
    df["date"] = df["period_end"].dt.strftime("%Y-%m-%d")
    g = df.groupby("date")
    out = pd.DataFrame(
        {
            "ghi_kwh_m2": g["ghi"].sum() / 1000.0,
            "dni_kwh_m2": g["dni"].sum() / 1000.0,
            "dhi_kwh_m2": g["dhi"].sum() / 1000.0,
            "air_temp_avg": g["air_temp"].mean(),
            "air_temp_max": g["air_temp"].max(),
            "air_temp_min": g["air_temp"].min(),
            "cloud_opacity_avg": g["cloud_opacity"].mean(),
            "peak_sun_hours": g["ghi"].sum() / 1000.0,
        }
    ).sort_index()
    return out.reset_index().to_dict(orient="records")


def fetch_solcast_forecast(
    latitude: float,
    longitude: float,
    api_key: str,
    hours: int = 24,
    period: str = "PT60M",
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
) -> list[dict]:
    """
    Fetch raw forecast periods from the Solcast radiation-and-weather API.

    Raises IrradianceQuotaError when the API reports an exhausted quota
    (HTTP 402) and IrradianceError for any other transport or HTTP failure.
    """
    if not api_key:
        raise IrradianceError("A Solcast API key is required")

    params = {
        "latitude": latitude,
        "longitude": longitude,
        "hours": hours,
        "period": period,
        "output_parameters": ",".join(SOLCAST_OUTPUT_PARAMETERS),
        "format": "json",
    }
    headers = {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}
    logger.info("Fetching Solcast forecast for lat=%s, lon=%s, hours=%s", latitude, longitude, hours)

    try:
        if client is not None:
            response = client.get(SOLCAST_URL, params=params, headers=headers, timeout=timeout)
        else:
            response = httpx.get(SOLCAST_URL, params=params, headers=headers, timeout=timeout)
    except httpx.HTTPError as e:
        raise IrradianceError(f"Solcast request failed: {e}") from e

    if response.status_code == 402:
        logger.warning("Solcast API quota exceeded")
        raise IrradianceQuotaError(
            "Solcast API quota exceeded. Wait for the quota to reset or upgrade the plan."
        )
    try:
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise IrradianceError(
            f"Solcast API error: {response.status_code} - {response.text}"
        ) from e

    forecasts = response.json().get("forecasts") or []
    logger.info("Received %d forecast periods", len(forecasts))
    return forecasts


def solcast_profile(
    latitude: float,
    longitude: float,
    api_key: str,
    hours: int = 24,
    client: Optional[httpx.Client] = None,
    tz: Optional[str] = DEFAULT_TZ,
) -> IrradianceProfile:
    """Fetch a forecast and reduce it to an IrradianceProfile."""
    records = fetch_solcast_forecast(latitude, longitude, api_key, hours=hours, client=client)
    return from_solcast_forecasts(records, tz=tz)
