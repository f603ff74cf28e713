import numpy as np
import pytest

from siteprofile import canon, irradiance, scenario
from siteprofile.types import SimulationConfig, TOUPeriod


def _irradiance(norm, temp=25.0):
    return irradiance.IrradianceProfile(
        normalized=list(norm),
        hourly_ghi=[v * 1000 for v in norm],
        peak_ghi=1000.0,
        daily_ghi_kwh=sum(norm),
        peak_sun_hours=sum(norm),
        hourly_temp=[temp] * 24,
    )


def _chart(total):
    return [{"hour": canon.HOUR_LABELS[h], "total": total} for h in range(24)]


def test_oversized_array_clips_at_inverter_limit():
    norm = [0.0] * 24
    norm[12] = 1.0
    cfg = SimulationConfig(inverter_ac_kva=100, dc_ac_ratio=1.3)
    pv = scenario.pv_generation(_irradiance(norm), cfg)
    assert pv.dc_kw[12] == pytest.approx(111.8)
    assert pv.ac_kw[12] == pytest.approx(100.0)
    assert pv.clipping_kw[12] == pytest.approx(11.8)
    assert pv.baseline_1to1_kw[12] == pytest.approx(86.0)
    assert pv.ac_kw[0] == 0.0


def test_temperature_derating():
    out = scenario.temperature_derating([15.0, 25.0, 35.0])
    assert out.tolist() == pytest.approx([1.0, 1.0, 0.96])


def test_hot_day_reduces_output():
    norm = [0.5] * 24
    cfg = SimulationConfig(inverter_ac_kva=100, system_losses=0.0)
    cool = scenario.pv_generation(_irradiance(norm, 25.0), cfg)
    hot = scenario.pv_generation(_irradiance(norm, 45.0), cfg)
    assert hot.ac_kw[0] == pytest.approx(cool.ac_kw[0] * 0.92)


def test_battery_holds_charge_off_peak():
    cfg = SimulationConfig(battery_capacity_kwh=100, battery_power_kw=10)
    out = scenario.dispatch_battery([50.0] * 4, [0.0] * 4, cfg, [TOUPeriod.OFF_PEAK] * 4)
    assert out.discharge_kw.sum() == 0.0
    assert np.allclose(out.soc_kwh, 20.0)
    assert np.allclose(out.grid_import_kw, 50.0)


def test_battery_discharges_in_peak_down_to_floor():
    cfg = SimulationConfig(battery_capacity_kwh=100, battery_power_kw=10)
    out = scenario.dispatch_battery([50.0, 50.0], [0.0, 0.0], cfg, [TOUPeriod.PEAK] * 2)
    assert out.discharge_kw.tolist() == [10.0, 0.0]
    assert out.soc_kwh.tolist() == [10.0, 10.0]
    assert out.grid_import_kw.tolist() == [40.0, 50.0]


def test_battery_charge_stops_at_ceiling():
    cfg = SimulationConfig(battery_capacity_kwh=100, battery_power_kw=50)
    out = scenario.dispatch_battery([0.0] * 3, [50.0] * 3, cfg, [TOUPeriod.OFF_PEAK] * 3)
    assert out.charge_kw.tolist() == [50.0, 25.0, 0.0]
    assert out.soc_kwh.max() == pytest.approx(95.0)


def test_simulate_without_pv_returns_rows():
    chart = _chart(50.0)
    out = scenario.simulate(chart, SimulationConfig(), irradiance.static_profile())
    assert out == chart
    out = scenario.simulate(chart, SimulationConfig(inverter_ac_kva=100), None)
    assert "pvGeneration" not in out[0]


def test_simulate_adds_pv_and_battery_series():
    cfg = SimulationConfig(inverter_ac_kva=100, battery_capacity_kwh=100, battery_power_kw=20)
    out = scenario.simulate(_chart(50.0), cfg, irradiance.static_profile(), month=1)
    noon = out[12]
    assert noon["pvGeneration"] == pytest.approx(86.0)
    assert noon["netLoad"] == pytest.approx(-36.0)
    assert noon["gridExport"] == pytest.approx(36.0)
    assert noon["gridImport"] == 0.0
    assert all(r["gridImportWithBattery"] <= r["gridImport"] + 1e-9 for r in out)
    assert sum(r["batteryDischarge"] for r in out) > 0
    assert max(r["batterySoC"] for r in out) <= 95.0 + 1e-9


def test_simulate_without_battery_has_no_battery_keys():
    out = scenario.simulate(_chart(50.0), SimulationConfig(inverter_ac_kva=100), irradiance.static_profile())
    assert "pvGeneration" in out[0]
    assert "batteryCharge" not in out[0]


def test_simulate_converts_pv_to_display_unit():
    cfg = SimulationConfig(inverter_ac_kva=100, display_unit="kva", power_factor=0.8)
    out = scenario.simulate(_chart(50.0), cfg, irradiance.static_profile())
    assert out[12]["pvGeneration"] == pytest.approx(86.0 / 0.8)
    assert out[12]["gridExport"] == pytest.approx(86.0 / 0.8 - 50.0)
