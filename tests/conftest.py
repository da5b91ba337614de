"""Shared fixtures for the Weather Blend tests."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from weather_blend.config import Settings
from weather_blend.ledger import HistoryLedger
from weather_blend.models import ProviderId, ProviderSample, WeightTriple
from weather_blend.providers.base import WeatherProvider
from weather_blend.weights import WeightStore

logging.basicConfig(level=logging.DEBUG)

THIRD = 1.0 / 3.0


@pytest.fixture
def settings():
    """Settings with dummy API keys and no background scheduler."""
    return Settings(run_scheduler=False, owm_key="owm-test", wb_key="wb-test")


@pytest.fixture
def equal_weights():
    return {p: WeightTriple(THIRD, THIRD, THIRD) for p in ProviderId}


@pytest.fixture
def store():
    return WeightStore()


@pytest.fixture
def equal_store(equal_weights):
    return WeightStore(equal_weights)


@pytest.fixture
def ledger():
    return HistoryLedger()


class FixedClock:
    """Callable clock that returns a settable time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc))


class FakeProvider(WeatherProvider):
    """
    Provider that serves queued results instead of calling an API.

    Each fetch pops the next queued value; the last value repeats.
    """

    def __init__(self, provider_id: ProviderId, settings: Settings,
                 current: Optional[List[Optional[ProviderSample]]] = None,
                 weekly: Optional[List[Optional[List[ProviderSample]]]] = None):
        self.provider_id = provider_id
        super().__init__(settings)
        self.current = list(current or [None])
        self.weekly = list(weekly or [None])
        self.current_calls = 0
        self.weekly_calls = 0

    @property
    def name(self) -> str:
        return f"Fake{self.provider_id.name}"

    async def fetch_current(self):
        self.current_calls += 1
        return self.current.pop(0) if len(self.current) > 1 else self.current[0]

    async def fetch_weekly(self):
        self.weekly_calls += 1
        return self.weekly.pop(0) if len(self.weekly) > 1 else self.weekly[0]


@pytest.fixture
def fake_provider_factory(settings):
    def make(provider_id, current=None, weekly=None):
        return FakeProvider(provider_id, settings, current=current, weekly=weekly)
    return make
