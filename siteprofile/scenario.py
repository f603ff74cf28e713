from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from . import canon, tou
from .irradiance import IrradianceProfile
from .types import ChartPoint, SimulationConfig, TOUPeriod

DISCHARGE_PERIODS = frozenset({TOUPeriod.PEAK, TOUPeriod.STANDARD})


@dataclass
class PVOutput:
    ac_kw: np.ndarray
    dc_kw: np.ndarray
    clipping_kw: np.ndarray
    baseline_1to1_kw: np.ndarray
    temperature_c: np.ndarray


@dataclass
class BatteryDispatch:
    charge_kw: np.ndarray
    discharge_kw: np.ndarray
    soc_kwh: np.ndarray
    grid_import_kw: np.ndarray  # import left after discharge


def temperature_derating(temps: Sequence[float]) -> np.ndarray:
    """1 - 0.004/°C above 25 °C; no uplift below it."""
    t = np.asarray(temps, dtype=float)
    excess = np.maximum(t - canon.REFERENCE_TEMP_C, 0.0)
    return 1.0 - canon.TEMP_COEFFICIENT * excess


def pv_generation(irradiance: IrradianceProfile, config: SimulationConfig) -> PVOutput:
    """Hourly PV output (kW) at the inverter, after losses, derating and AC clipping."""
    norm = np.asarray(irradiance.normalized, dtype=float)
    temps = np.asarray(irradiance.hourly_temp or [canon.REFERENCE_TEMP_C] * canon.HOURS, dtype=float)
    efficiency = (1.0 - config.system_losses) * temperature_derating(temps)

    ac_limit = config.inverter_ac_kva
    dc = norm * config.dc_capacity_kwp * efficiency
    ac = np.minimum(dc, ac_limit)
    clipping = np.maximum(dc - ac_limit, 0.0)
    # unoversized system: DC nameplate equal to the AC limit
    baseline = norm * ac_limit * efficiency

    return PVOutput(
        ac_kw=ac,
        dc_kw=dc,
        clipping_kw=clipping,
        baseline_1to1_kw=baseline,
        temperature_c=temps,
    )


def dispatch_battery(
    grid_import: Sequence[float],
    grid_export: Sequence[float],
    config: SimulationConfig,
    periods: Sequence[TOUPeriod],
) -> BatteryDispatch:
    """
    Greedy one-day battery dispatch.

    Charges from exported PV, up to the power limit and the 95% ceiling.
    Otherwise discharges against grid import only in Peak or Standard hours,
    down to the 10% floor. State of charge starts at 20%.
    """
    imp = np.asarray(grid_import, dtype=float)
    exp = np.asarray(grid_export, dtype=float)
    n = len(imp)
    charge = np.zeros(n, dtype=float)
    discharge = np.zeros(n, dtype=float)
    soc = np.zeros(n, dtype=float)

    cap = config.battery_capacity_kwh
    power = config.battery_power_kw
    soc_min = cap * canon.BATTERY_MIN_SOC
    soc_max = cap * canon.BATTERY_MAX_SOC
    soc_now = cap * canon.BATTERY_INITIAL_SOC

    for i in range(n):
        if exp[i] > 0:
            ch = max(min(power, exp[i], soc_max - soc_now), 0.0)
            soc_now += ch
            charge[i] = ch
        elif imp[i] > 0 and periods[i] in DISCHARGE_PERIODS:
            out = max(min(power, imp[i], soc_now - soc_min), 0.0)
            soc_now -= out
            discharge[i] = out
        soc[i] = soc_now

    return BatteryDispatch(
        charge_kw=charge,
        discharge_kw=discharge,
        soc_kwh=soc,
        grid_import_kw=np.maximum(imp - discharge, 0.0),
    )


def simulate(
    chart: Sequence[dict],
    config: SimulationConfig,
    irradiance: Optional[IrradianceProfile] = None,
    is_weekend: bool = False,
    month: Optional[int] = None,
    day_of_week: Optional[int] = None,
    tou_settings: Optional[tou.TOUSettings] = None,
) -> list[ChartPoint]:
    """
    Compose PV and battery series onto a 24-point load chart.

    `chart` rows carry 'hour' and 'total' (already in the display unit) plus
    any per-tenant keys, which are passed through. PV series are converted to
    the same display unit so net load and grid flows stay consistent.
    Without irradiance or inverter capacity the load rows are returned as is;
    the battery only runs alongside PV.
    """
    rows: list[ChartPoint] = [dict(r) for r in chart]  # type: ignore[misc]
    if irradiance is None or not config.pv_enabled or len(rows) != canon.HOURS:
        return rows

    load = np.array([float(r.get("total", 0.0)) for r in rows])
    pv = pv_generation(irradiance, config)
    mult = config.unit_multiplier
    pv = PVOutput(
        ac_kw=pv.ac_kw * mult,
        dc_kw=pv.dc_kw * mult,
        clipping_kw=pv.clipping_kw * mult,
        baseline_1to1_kw=pv.baseline_1to1_kw * mult,
        temperature_c=pv.temperature_c,
    )
    net = load - pv.ac_kw
    grid_import = np.maximum(net, 0.0)
    grid_export = np.maximum(-net, 0.0)

    for h, row in enumerate(rows):
        row["pvGeneration"] = float(pv.ac_kw[h])
        row["pvDcOutput"] = float(pv.dc_kw[h])
        row["pvClipping"] = float(pv.clipping_kw[h])
        row["pv1to1Baseline"] = float(pv.baseline_1to1_kw[h])
        row["temperature"] = float(pv.temperature_c[h])
        row["netLoad"] = float(net[h])
        row["gridImport"] = float(grid_import[h])
        row["gridExport"] = float(grid_export[h])

    if config.battery_enabled:
        periods = tou.day_periods(
            is_weekend, month=month, day_of_week=day_of_week, settings=tou_settings
        )
        batt = dispatch_battery(grid_import, grid_export, config, periods)
        for h, row in enumerate(rows):
            row["batteryCharge"] = float(batt.charge_kw[h])
            row["batteryDischarge"] = float(batt.discharge_kw[h])
            row["batterySoC"] = float(batt.soc_kwh[h])
            row["gridImportWithBattery"] = float(batt.grid_import_kw[h])

    return rows
