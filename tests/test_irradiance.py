import httpx
import pytest

from siteprofile import irradiance
from siteprofile.exceptions import IrradianceError, IrradianceQuotaError

FORECASTS = [
    {"period_end": "2025-01-06T10:00:00Z", "ghi": 800, "dni": 700, "dhi": 100, "air_temp": 30},
    {"period_end": "2025-01-07T10:00:00Z", "ghi": 600, "dni": 500, "dhi": 100, "air_temp": 0},
    {"period_end": "2025-01-06T11:00:00Z", "ghi": 1000, "dni": 900, "dhi": 100, "air_temp": 32},
]


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_forecasts_reduce_to_one_day():
    prof = irradiance.from_solcast_forecasts(FORECASTS, tz=None)
    assert len(prof.normalized) == 24
    assert prof.hourly_ghi[10] == pytest.approx(700.0)
    assert prof.normalized[11] == pytest.approx(1.0)
    assert prof.normalized[10] == pytest.approx(0.7)
    assert prof.daily_ghi_kwh == pytest.approx(1.7)
    assert prof.peak_sun_hours == pytest.approx(1.7)
    # a zero air temperature reads as 25 °C; empty hours too
    assert prof.hourly_temp[10] == pytest.approx(27.5)
    assert prof.hourly_temp[3] == pytest.approx(25.0)
    assert prof.source == "solcast"


def test_forecast_hours_follow_local_time():
    prof = irradiance.from_solcast_forecasts(FORECASTS)
    # Africa/Johannesburg is UTC+2
    assert prof.hourly_ghi[12] == pytest.approx(700.0)
    assert prof.hourly_ghi[10] == 0.0


def test_empty_forecast_raises():
    with pytest.raises(IrradianceError):
        irradiance.from_solcast_forecasts([])


def test_daily_summaries():
    days = irradiance.daily_summaries(FORECASTS)
    assert [d["date"] for d in days] == ["2025-01-06", "2025-01-07"]
    assert days[0]["ghi_kwh_m2"] == pytest.approx(1.8)
    assert days[0]["air_temp_max"] == pytest.approx(32.0)


def test_fetch_sends_bearer_token_and_returns_periods():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"forecasts": FORECASTS})

    out = irradiance.fetch_solcast_forecast(-26.2, 28.0, "key-1", client=_client(handler))
    assert out == FORECASTS
    assert seen["auth"] == "Bearer key-1"
    assert seen["params"]["hours"] == "24"
    assert "ghi" in seen["params"]["output_parameters"]


def test_quota_error():
    client = _client(lambda request: httpx.Response(402, text="quota"))
    with pytest.raises(IrradianceQuotaError):
        irradiance.fetch_solcast_forecast(0, 0, "key", client=client)


def test_server_error_is_not_a_quota_error():
    client = _client(lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(IrradianceError) as exc:
        irradiance.fetch_solcast_forecast(0, 0, "key", client=client)
    assert not isinstance(exc.value, IrradianceQuotaError)
    assert "500" in str(exc.value)


def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(IrradianceError):
        irradiance.fetch_solcast_forecast(0, 0, "key", client=_client(handler))


def test_missing_api_key():
    with pytest.raises(IrradianceError):
        irradiance.fetch_solcast_forecast(0, 0, "")


def test_solcast_profile_end_to_end():
    client = _client(lambda request: httpx.Response(200, json={"forecasts": FORECASTS}))
    prof = irradiance.solcast_profile(0, 0, "key", client=client, tz=None)
    assert prof.peak_ghi == pytest.approx(1000.0)


def test_static_profile():
    prof = irradiance.static_profile()
    assert max(prof.normalized) == 1.0
    assert prof.peak_sun_hours == pytest.approx(5.5)
    assert prof.avg_temp == pytest.approx(25.0)
