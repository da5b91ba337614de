"""
Providers package for Weather Blend

One adapter per provider in the closed ProviderId set:

1. NWS            - National Weather Service, api.weather.gov (no key)
2. OpenWeatherMap - current weather + One Call daily (OWM_KEY)
3. Weatherbit     - current + daily forecast (WB_KEY)

Each adapter returns a ProviderSample (or 7 of them) normalized to Celsius
and [0, 1] probabilities, or None when the provider is unavailable.
"""

from typing import List, Optional

import httpx

from weather_blend.config import Settings
from weather_blend.providers.base import (
    WeatherProvider,
    fetch_all_current,
    fetch_all_weekly,
    pad_week,
)
from weather_blend.providers.nws import NWSProvider
from weather_blend.providers.openweather import OpenWeatherProvider
from weather_blend.providers.weatherbit import WeatherbitProvider
from weather_blend.resilience import RetryConfig


def build_providers(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    retry_config: Optional[RetryConfig] = None
) -> List[WeatherProvider]:
    """One adapter per ProviderId, in enum order."""
    return [
        NWSProvider(settings, transport=transport, retry_config=retry_config),
        OpenWeatherProvider(settings, transport=transport, retry_config=retry_config),
        WeatherbitProvider(settings, transport=transport, retry_config=retry_config),
    ]


__all__ = [
    "WeatherProvider",
    "NWSProvider",
    "OpenWeatherProvider",
    "WeatherbitProvider",
    "build_providers",
    "fetch_all_current",
    "fetch_all_weekly",
    "pad_week",
]
