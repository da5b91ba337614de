"""
Tests for the provider adapters

Payload parsing is tested directly; the fetch paths run against
httpx.MockTransport so no request leaves the process.
"""

import logging

import httpx
import pytest

from weather_blend.config import Settings
from weather_blend.models import ProviderId, ProviderSample
from weather_blend.providers import (
    NWSProvider,
    OpenWeatherProvider,
    WeatherbitProvider,
    build_providers,
    fetch_all_current,
    fetch_all_weekly,
    pad_week,
)
from weather_blend.providers import nws, openweather, weatherbit
from weather_blend.resilience import ProviderUnavailable, RetryConfig

logger = logging.getLogger(__name__)

NO_RETRY = RetryConfig(max_retries=0, jitter=False)

NWS_FORECAST_URL = "https://api.weather.gov/gridpoints/OKX/65,35/forecast"


def nws_period(temp_f, text, daytime=True):
    return {"temperature": temp_f, "temperatureUnit": "F",
            "shortForecast": text, "isDaytime": daytime}


NWS_FORECAST = {
    "properties": {
        "periods": [
            nws_period(50, "Chance Rain Showers"),
            nws_period(32, "Snow Likely", daytime=False),
            nws_period(41, "Sunny"),
            nws_period(30, "Clear", daytime=False),
            nws_period(59, "Rain And Snow"),
            nws_period(45, "Cloudy", daytime=False),
            nws_period(68, "Sunny"),
            nws_period(50, "Clear", daytime=False),
            nws_period(77, "Sunny"),
            nws_period(86, "Hot"),
            nws_period(95, "Hot"),
            nws_period(32, "Snow"),
        ]
    }
}

OWM_CURRENT = {"main": {"temp": 12.5}, "weather": [{"main": "Rain"}]}
OWM_ONECALL = {
    "daily": [
        {"temp": {"day": 10.0 + d}, "pop": 0.1 * d, "snow": 1.5 if d == 2 else 0}
        for d in range(8)
    ]
}

WB_CURRENT = {"data": [{"temp": 3.0, "weather": {"code": 601}}]}
WB_DAILY = {
    "data": [
        {"temp": 5.0, "pop": 40, "weather": {"code": 500}},
        {"temp": -2.0, "pop": 80, "weather": {"code": 602}},
    ]
}


class TestNWSParsing:

    def test_current_first_period(self):
        sample = nws.parse_current(NWS_FORECAST)
        assert sample.temperature == pytest.approx(10.0)
        assert sample.rain_probability == 0.5
        assert sample.snow_probability == 0.0

    def test_rain_and_snow_text(self):
        sample = nws.parse_period(nws_period(59, "Rain And Snow"))
        assert sample.rain_probability == 0.5
        assert sample.snow_probability == 0.3

    def test_weekly_uses_daytime_periods(self):
        week = nws.parse_weekly(NWS_FORECAST)
        temps_f = [50, 41, 59, 68, 77, 86, 95]
        assert len(week) == 7
        for sample, temp_f in zip(week, temps_f):
            assert sample.temperature == pytest.approx((temp_f - 32) * 5 / 9)

    def test_weekly_falls_back_to_all_periods(self):
        payload = {"properties": {"periods": [nws_period(50, "Sunny", daytime=False)] * 3}}
        assert len(nws.parse_weekly(payload)) == 3

    def test_empty_periods_unavailable(self):
        with pytest.raises(ProviderUnavailable):
            nws.parse_current({"properties": {"periods": []}})

    def test_missing_temperature_unavailable(self):
        with pytest.raises(ProviderUnavailable):
            nws.parse_period({"shortForecast": "Sunny"})


class TestOpenWeatherParsing:

    def test_current(self):
        sample = openweather.parse_current(OWM_CURRENT)
        assert sample == ProviderSample(12.5, 0.4, 0.0)

    def test_current_snow(self):
        sample = openweather.parse_current({"main": {"temp": -1}, "weather": [{"main": "Snow"}]})
        assert sample.snow_probability == 0.2
        assert sample.rain_probability == 0.0

    def test_weekly_truncated_to_seven(self):
        week = openweather.parse_weekly(OWM_ONECALL)
        assert len(week) == 7
        assert week[3].temperature == 13.0
        assert week[3].rain_probability == pytest.approx(0.3)
        assert week[2].snow_probability == 0.3
        assert week[1].snow_probability == 0.0

    def test_missing_temp_unavailable(self):
        with pytest.raises(ProviderUnavailable):
            openweather.parse_current({"main": {}, "weather": []})


class TestWeatherbitParsing:

    def test_current_snow_code(self):
        sample = weatherbit.parse_current(WB_CURRENT)
        assert sample == ProviderSample(3.0, 0.0, 0.4)

    def test_current_default_code_is_clear(self):
        sample = weatherbit.parse_current({"data": [{"temp": 20}]})
        assert sample == ProviderSample(20.0, 0.0, 0.0)

    def test_weekly_pop_percent(self):
        week = weatherbit.parse_weekly(WB_DAILY)
        assert week[0] == ProviderSample(5.0, 0.4, 0.0)
        assert week[1] == ProviderSample(-2.0, 0.8, 0.4)

    def test_no_data_unavailable(self):
        with pytest.raises(ProviderUnavailable):
            weatherbit.parse_current({"data": []})


def test_pad_week():
    one = ProviderSample(1.0, 0.0, 0.0)
    padded = pad_week([one, one])
    assert len(padded) == 7
    assert padded[2] == ProviderSample.zero()
    assert len(pad_week([one] * 10)) == 7


def make_transport(routes, calls=None):
    """MockTransport answering by host + path; unknown routes get a 404."""
    def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.url.host}{request.url.path}"
        if calls is not None:
            calls.append(request)
        if key not in routes:
            return httpx.Response(404, json={"error": "not found"})
        status, body = routes[key]
        return httpx.Response(status, json=body)
    return httpx.MockTransport(handler)


ALL_ROUTES = {
    "api.weather.gov/points/40.9257,-73.141": (200, {"properties": {"forecast": NWS_FORECAST_URL}}),
    "api.weather.gov/gridpoints/OKX/65,35/forecast": (200, NWS_FORECAST),
    "api.openweathermap.org/data/2.5/weather": (200, OWM_CURRENT),
    "api.openweathermap.org/data/2.5/onecall": (200, OWM_ONECALL),
    "api.weatherbit.io/v2.0/current": (200, WB_CURRENT),
    "api.weatherbit.io/v2.0/forecast/daily": (200, WB_DAILY),
}


class TestFetch:

    @pytest.mark.asyncio
    async def test_nws_two_step_fetch(self, settings):
        calls = []
        provider = NWSProvider(settings, transport=make_transport(ALL_ROUTES, calls),
                               retry_config=NO_RETRY)
        sample = await provider.fetch_current()

        assert sample is not None
        assert sample.temperature == pytest.approx(10.0)
        assert len(calls) == 2
        assert calls[0].headers["User-Agent"] == settings.nws_user_agent

    @pytest.mark.asyncio
    async def test_weekly_padded_to_seven(self, settings):
        provider = WeatherbitProvider(settings, transport=make_transport(ALL_ROUTES),
                                      retry_config=NO_RETRY)
        week = await provider.fetch_weekly()

        assert len(week) == 7
        assert week[1].temperature == -2.0
        assert week[6] == ProviderSample.zero()

    @pytest.mark.asyncio
    async def test_api_key_sent_as_param(self, settings):
        calls = []
        provider = OpenWeatherProvider(settings, transport=make_transport(ALL_ROUTES, calls),
                                       retry_config=NO_RETRY)
        await provider.fetch_current()

        params = calls[0].url.params
        assert params["appid"] == "owm-test"
        assert params["units"] == "metric"

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self, settings):
        routes = {"api.weatherbit.io/v2.0/current": (403, {"error": "bad key"})}
        provider = WeatherbitProvider(settings, transport=make_transport(routes),
                                      retry_config=NO_RETRY)
        assert await provider.fetch_current() is None

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self):
        calls = []
        provider = OpenWeatherProvider(Settings(run_scheduler=False, owm_key=None),
                                       transport=make_transport(ALL_ROUTES, calls),
                                       retry_config=NO_RETRY)
        assert await provider.fetch_current() is None
        assert await provider.fetch_weekly() is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_server_error_retried(self, settings):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                return httpx.Response(503, json={})
            return httpx.Response(200, json=WB_CURRENT)

        retry = RetryConfig(max_retries=1, base_delay_seconds=0.0, jitter=False)
        provider = WeatherbitProvider(settings, transport=httpx.MockTransport(handler),
                                      retry_config=retry)
        sample = await provider.fetch_current()

        assert sample == ProviderSample(3.0, 0.0, 0.4)
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_fetch_all_current(self, settings):
        providers = build_providers(settings, transport=make_transport(ALL_ROUTES),
                                    retry_config=NO_RETRY)
        results = await fetch_all_current(providers)

        assert set(results) == set(ProviderId)
        assert results[ProviderId.OWM] == ProviderSample(12.5, 0.4, 0.0)

    @pytest.mark.asyncio
    async def test_fetch_all_weekly_with_one_down(self, settings):
        routes = dict(ALL_ROUTES)
        del routes["api.openweathermap.org/data/2.5/onecall"]
        providers = build_providers(settings, transport=make_transport(routes),
                                    retry_config=NO_RETRY)
        results = await fetch_all_weekly(providers)

        assert results[ProviderId.OWM] is None
        assert len(results[ProviderId.NWS]) == 7
        assert len(results[ProviderId.WB]) == 7


class TestNonFiniteValues:
    """Non-finite numbers in a payload make the provider unavailable."""

    @pytest.mark.parametrize("bad", ["nan", "inf", "-Infinity", float("nan"), float("inf")])
    def test_nws_period(self, bad):
        with pytest.raises(ProviderUnavailable):
            nws.parse_period(nws_period(bad, "Sunny"))

    @pytest.mark.parametrize("bad", ["nan", "inf", float("nan")])
    def test_openweather_current(self, bad):
        with pytest.raises(ProviderUnavailable):
            openweather.parse_current({"main": {"temp": bad}, "weather": [{"main": "Clear"}]})

    @pytest.mark.parametrize("day", [
        {"temp": {"day": float("nan")}, "pop": 0.2},
        {"temp": {"day": 10.0}, "pop": float("nan")},
        {"temp": {"day": 10.0}, "pop": "inf"},
    ])
    def test_openweather_day(self, day):
        with pytest.raises(ProviderUnavailable):
            openweather.parse_weekly({"daily": [day]})

    @pytest.mark.parametrize("bad", ["nan", float("-inf")])
    def test_weatherbit_current(self, bad):
        with pytest.raises(ProviderUnavailable):
            weatherbit.parse_current({"data": [{"temp": bad, "weather": {"code": 800}}]})

    @pytest.mark.parametrize("day", [
        {"temp": float("nan"), "pop": 10},
        {"temp": 4.0, "pop": float("nan")},
    ])
    def test_weatherbit_day(self, day):
        with pytest.raises(ProviderUnavailable):
            weatherbit.parse_weekly({"data": [day]})

    def test_finite_strings_still_accepted(self):
        sample = openweather.parse_current({"main": {"temp": "12.5"}, "weather": []})
        assert sample.temperature == 12.5

    @pytest.mark.asyncio
    async def test_nan_payload_fetch_is_unavailable(self, settings):
        routes = {"api.openweathermap.org/data/2.5/weather":
                  (200, {"main": {"temp": "nan"}, "weather": [{"main": "Rain"}]})}
        provider = OpenWeatherProvider(settings, transport=make_transport(routes),
                                       retry_config=NO_RETRY)
        assert await provider.fetch_current() is None
