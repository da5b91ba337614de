"""
Weatherbit Provider for Weather Blend

Current conditions: /v2.0/current
7-day forecast:     /v2.0/forecast/daily

Weatherbit weather codes: 5xx = rain, 6xx = snow. Daily forecasts carry a
precipitation probability in percent (pop).

Requires WB_KEY.
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

BASE_URL = "https://api.weatherbit.io/v2.0"

CLEAR_SKY_CODE = 800
RAIN_CODE_PROBABILITY = 0.5
SNOW_CODE_PROBABILITY = 0.4


def _weather_code(entry: Dict[str, Any]) -> int:
    code = (entry.get("weather") or {}).get("code")
    try:
        return int(code) if code is not None else CLEAR_SKY_CODE
    except (TypeError, ValueError):
        return CLEAR_SKY_CODE


def _is_rain(code: int) -> bool:
    return 500 <= code < 600


def _is_snow(code: int) -> bool:
    return 600 <= code < 700


def _entries(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    data = payload.get("data") or []
    if not data:
        raise ProviderUnavailable("Weatherbit data not found")
    return data


def parse_current(payload: Dict[str, Any]) -> ProviderSample:
    entry = _entries(payload)[0]
    code = _weather_code(entry)
    return ProviderSample(
        temperature=require_number(entry.get("temp"), "temp"),
        rain_probability=RAIN_CODE_PROBABILITY if _is_rain(code) else 0.0,
        snow_probability=SNOW_CODE_PROBABILITY if _is_snow(code) else 0.0,
    )


def parse_day(day: Dict[str, Any]) -> ProviderSample:
    code = _weather_code(day)
    pop = require_number(day.get("pop") or 0, "daily pop")
    return ProviderSample(
        temperature=require_number(day.get("temp"), "daily temp"),
        rain_probability=clamp_probability(pop / 100, "daily pop"),
        snow_probability=SNOW_CODE_PROBABILITY if _is_snow(code) else 0.0,
    )


def parse_weekly(payload: Dict[str, Any]) -> List[ProviderSample]:
    return [parse_day(day) for day in _entries(payload)[:WEEK_DAYS]]


class WeatherbitProvider(WeatherProvider):
    """Provider for Weatherbit current observations and daily forecast."""

    provider_id = ProviderId.WB

    def _params(self) -> Dict[str, Any]:
        if not self.settings.wb_key:
            raise ProviderUnavailable("no WB_KEY configured")
        return {
            "lat": self.settings.latitude,
            "lon": self.settings.longitude,
            "key": self.settings.wb_key,
        }

    async def _fetch_current(self) -> ProviderSample:
        params = self._params()
        logger.info("[WeatherbitProvider] Fetching current conditions...")
        async with self._client() as client:
            payload = await self._get_json(client, f"{BASE_URL}/current", params=params)
        return parse_current(payload)

    async def _fetch_weekly(self) -> List[ProviderSample]:
        params = self._params()
        logger.info("[WeatherbitProvider] Fetching daily forecast...")
        async with self._client() as client:
            payload = await self._get_json(client, f"{BASE_URL}/forecast/daily", params=params)
        return parse_weekly(payload)
