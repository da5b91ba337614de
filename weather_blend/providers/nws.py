"""
National Weather Service (NWS) Provider for Weather Blend

Fetches the official US forecast from api.weather.gov in two steps:
1. /points/{lat},{lon} resolves the forecast office gridpoint
2. properties.forecast (the 'Period' forecast: Today, Tonight, ...) is fetched

NWS periods carry no precipitation probability we can rely on, so rain and
snow are derived from the short forecast text:
- "rain" in shortForecast -> rain probability 0.5
- "snow" in shortForecast -> snow probability 0.3
"""

import logging
from typing import Any, Dict, List

import httpx

from weather_blend.models import ProviderId, ProviderSample
from weather_blend.providers.base import (
    WEEK_DAYS,
    WeatherProvider,
    fahrenheit_to_celsius,
    require_number,
)
from weather_blend.resilience import ProviderUnavailable

logger = logging.getLogger(__name__)

POINTS_URL = "https://api.weather.gov/points/{lat},{lon}"

RAIN_TEXT_PROBABILITY = 0.5
SNOW_TEXT_PROBABILITY = 0.3


def parse_period(period: Dict[str, Any]) -> ProviderSample:
    """Convert one NWS forecast period to a sample."""
    temp = require_number(period.get("temperature"), "period temperature")
    if period.get("temperatureUnit", "F") == "C":
        temp_c = temp
    else:
        temp_c = fahrenheit_to_celsius(temp)

    text = (period.get("shortForecast") or "").lower()
    return ProviderSample(
        temperature=temp_c,
        rain_probability=RAIN_TEXT_PROBABILITY if "rain" in text else 0.0,
        snow_probability=SNOW_TEXT_PROBABILITY if "snow" in text else 0.0,
    )


def _periods(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    periods = (payload.get("properties") or {}).get("periods") or []
    if not periods:
        raise ProviderUnavailable("NWS periods empty")
    return periods


def parse_current(payload: Dict[str, Any]) -> ProviderSample:
    """The first period of the forecast is the current sample."""
    return parse_period(_periods(payload)[0])


def parse_weekly(payload: Dict[str, Any]) -> List[ProviderSample]:
    """
    First 7 daytime periods; falls back to all periods when fewer than 7
    daytime periods are present.
    """
    periods = _periods(payload)
    daytime = [p for p in periods if p.get("isDaytime")]
    if len(daytime) < WEEK_DAYS:
        daytime = periods
    return [parse_period(p) for p in daytime[:WEEK_DAYS]]


class NWSProvider(WeatherProvider):
    """
    Provider for National Weather Service forecasts.

    The NWS API requires a User-Agent identifying the application.
    """

    provider_id = ProviderId.NWS

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.settings.nws_user_agent,
            "Accept": "application/geo+json",
        }

    async def _fetch_forecast(self, client: httpx.AsyncClient) -> Dict[str, Any]:
        points_url = POINTS_URL.format(lat=self.settings.latitude, lon=self.settings.longitude)
        points = await self._get_json(client, points_url, headers=self.headers)

        forecast_url = (points.get("properties") or {}).get("forecast")
        if not forecast_url:
            raise ProviderUnavailable("NWS forecast URL not found")

        return await self._get_json(client, forecast_url, headers=self.headers)

    async def _fetch_current(self) -> ProviderSample:
        logger.info("[NWSProvider] Fetching current period from api.weather.gov...")
        async with self._client() as client:
            payload = await self._fetch_forecast(client)
        return parse_current(payload)

    async def _fetch_weekly(self) -> List[ProviderSample]:
        logger.info("[NWSProvider] Fetching 7-day periods from api.weather.gov...")
        async with self._client() as client:
            payload = await self._fetch_forecast(client)
        return parse_weekly(payload)
