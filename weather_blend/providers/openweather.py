"""
OpenWeatherMap Provider for Weather Blend

Current conditions: /data/2.5/weather (metric units)
7-day forecast:     /data/2.5/onecall (daily block only)

Requires OWM_KEY. Without it the provider reports unavailable and makes no
request.
"""

import logging
from typing import Any, Dict, List

from weather_blend.models import ProviderId, ProviderSample
from weather_blend.providers.base import (
    WEEK_DAYS,
    WeatherProvider,
    clamp_probability,
    require_number,
)
from weather_blend.resilience import ProviderUnavailable

logger = logging.getLogger(__name__)

BASE_URL = "https://api.openweathermap.org/data/2.5"

# Condition-derived probabilities for current weather
RAIN_CONDITION_PROBABILITY = 0.4
SNOW_CONDITION_PROBABILITY = 0.2
# Daily forecasts carry a snow volume instead of a probability
SNOW_VOLUME_PROBABILITY = 0.3


def parse_current(payload: Dict[str, Any]) -> ProviderSample:
    temp = require_number((payload.get("main") or {}).get("temp"), "main.temp")

    weather = payload.get("weather") or [{}]
    condition = (weather[0].get("main") or "").lower()

    return ProviderSample(
        temperature=temp,
        rain_probability=RAIN_CONDITION_PROBABILITY if "rain" in condition else 0.0,
        snow_probability=SNOW_CONDITION_PROBABILITY if "snow" in condition else 0.0,
    )


def parse_day(day: Dict[str, Any]) -> ProviderSample:
    temp = require_number((day.get("temp") or {}).get("day"), "daily temp.day")
    snow = day.get("snow") or 0
    return ProviderSample(
        temperature=temp,
        rain_probability=clamp_probability(day.get("pop") or 0, "daily pop"),
        snow_probability=SNOW_VOLUME_PROBABILITY if snow > 0 else 0.0,
    )


def parse_weekly(payload: Dict[str, Any]) -> List[ProviderSample]:
    daily = payload.get("daily") or []
    if not daily:
        raise ProviderUnavailable("OWM daily forecast empty")
    return [parse_day(day) for day in daily[:WEEK_DAYS]]


class OpenWeatherProvider(WeatherProvider):
    """Provider for OpenWeatherMap current weather and daily forecast."""

    provider_id = ProviderId.OWM

    def _params(self) -> Dict[str, Any]:
        if not self.settings.owm_key:
            raise ProviderUnavailable("no OWM_KEY configured")
        return {
            "lat": self.settings.latitude,
            "lon": self.settings.longitude,
            "units": "metric",
            "appid": self.settings.owm_key,
        }

    async def _fetch_current(self) -> ProviderSample:
        params = self._params()
        logger.info("[OpenWeatherProvider] Fetching current weather...")
        async with self._client() as client:
            payload = await self._get_json(client, f"{BASE_URL}/weather", params=params)
        return parse_current(payload)

    async def _fetch_weekly(self) -> List[ProviderSample]:
        params = self._params()
        params["exclude"] = "current,minutely,hourly,alerts"
        logger.info("[OpenWeatherProvider] Fetching daily forecast (One Call)...")
        async with self._client() as client:
            payload = await self._get_json(client, f"{BASE_URL}/onecall", params=params)
        return parse_weekly(payload)
