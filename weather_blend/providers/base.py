"""
Common plumbing for the provider adapters.

Every adapter turns one provider's API payload into ProviderSample objects
(Celsius, probabilities in [0, 1]) or reports the provider as unavailable by
returning None. Adapters never hand back a partially-filled sample: a
payload missing a required field raises ProviderUnavailable, which the
retry wrapper converts to None.
"""

import asyncio
import logging
import math
from typing import Dict, List, Optional, Sequence

import httpx

from weather_blend.config import Settings
from weather_blend.models import ProviderId, ProviderSample
from weather_blend.resilience import ProviderUnavailable, RetryConfig, with_retry

logger = logging.getLogger(__name__)

WEEK_DAYS = 7


def fahrenheit_to_celsius(temp_f: float) -> float:
    return (temp_f - 32) * 5 / 9


def clamp_probability(value, what: str = "probability") -> float:
    return min(1.0, max(0.0, require_number(value, what)))


def require_number(value, what: str) -> float:
    """Return value as a finite float or raise ProviderUnavailable."""
    if value is None or isinstance(value, bool):
        raise ProviderUnavailable(f"missing {what}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ProviderUnavailable(f"invalid {what}: {value!r}")
    if not math.isfinite(number):
        raise ProviderUnavailable(f"non-finite {what}: {value!r}")
    return number


def pad_week(days: Sequence[ProviderSample]) -> List[ProviderSample]:
    """Exactly 7 samples: truncate extra days, fill missing ones with zeros."""
    week = list(days[:WEEK_DAYS])
    while len(week) < WEEK_DAYS:
        week.append(ProviderSample.zero())
    return week


class WeatherProvider:
    """
    Base class for one provider adapter.

    Subclasses set `provider_id` and implement `_fetch_current` and
    `_fetch_weekly`, raising on any failure. The public `fetch_current` and
    `fetch_weekly` wrap them with retries and return None when the provider
    is unavailable.
    """

    provider_id: ProviderId

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_config: Optional[RetryConfig] = None
    ):
        self.settings = settings
        self.transport = transport
        self.retry_config = retry_config
        logger.info(f"[{self.name}] Provider ready")

    @property
    def name(self) -> str:
        return type(self).__name__

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.fetch_timeout_seconds,
            transport=self.transport,
        )

    async def _get_json(self, client: httpx.AsyncClient, url: str, **kwargs):
        resp = await client.get(url, **kwargs)
        logger.debug(f"[{self.name}] GET {resp.request.url.path} -> {resp.status_code}")
        resp.raise_for_status()
        return resp.json()

    async def _fetch_current(self) -> ProviderSample:
        raise NotImplementedError

    async def _fetch_weekly(self) -> List[ProviderSample]:
        raise NotImplementedError

    async def fetch_current(self) -> Optional[ProviderSample]:
        fetch = with_retry(self.name, self.retry_config)(self._fetch_current)
        sample = await fetch()
        if sample is not None:
            logger.info(f"[{self.name}] Current: {sample.temperature:.1f}C, "
                        f"rain={sample.rain_probability:.2f}, snow={sample.snow_probability:.2f}")
        return sample

    async def fetch_weekly(self) -> Optional[List[ProviderSample]]:
        fetch = with_retry(self.name, self.retry_config)(self._fetch_weekly)
        days = await fetch()
        if days is None:
            return None
        if len(days) < WEEK_DAYS:
            logger.warning(f"[{self.name}] Only {len(days)} days returned, padding with zeros")
        return pad_week(days)


async def _settle(provider: WeatherProvider, weekly: bool):
    """Run one fetch; an exception escaping the adapter counts as unavailable."""
    try:
        if weekly:
            return await provider.fetch_weekly()
        return await provider.fetch_current()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f"[{provider.name}] Fetch raised, treating as unavailable: {e}", exc_info=True)
        return None


async def fetch_all_current(
    providers: Sequence[WeatherProvider]
) -> Dict[ProviderId, Optional[ProviderSample]]:
    """Fetch the current sample from every provider concurrently and wait for all."""
    results = await asyncio.gather(*(_settle(p, weekly=False) for p in providers))
    return {p.provider_id: r for p, r in zip(providers, results)}


async def fetch_all_weekly(
    providers: Sequence[WeatherProvider]
) -> Dict[ProviderId, Optional[List[ProviderSample]]]:
    """Fetch the 7-day samples from every provider concurrently and wait for all."""
    results = await asyncio.gather(*(_settle(p, weekly=True) for p in providers))
    return {p.provider_id: r for p, r in zip(providers, results)}
