"""
Weather Blend Scheduler - cycle orchestration

Drives the engine on two independent cadences:

Hourly cycle:  Fetching -> Adapting (skipped on the first cycle) -> Fusing -> Published
Weekly cycle:  Fetching -> Fusing -> Published   (never adapts weights)

Features:
- Providers are fetched concurrently; the cycle waits for all of them to
  settle before touching the engine (no partial-result fusion)
- Unavailable providers are replaced by an all-zero sample for the cycle
- The samples of one hourly cycle are kept as the reference for the next
- A trigger that arrives while the same cycle is still running is skipped
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from weather_blend.adaptation import AdaptationEngine
from weather_blend.config import Settings
from weather_blend.ensemble import WEEK_DAYS, FusionEngine
from weather_blend.ledger import HistoryLedger
from weather_blend.models import (
    Breakdown,
    FusedForecast,
    ProviderId,
    ProviderSample,
    SampleMap,
    breakdown_to_dict,
    samples_to_dict,
    weights_to_dict,
)
from weather_blend.providers import WeatherProvider, fetch_all_current, fetch_all_weekly
from weather_blend.weights import WeightStore

logger = logging.getLogger(__name__)


@dataclass
class DailyOverview:
    """Daily stats published alongside the forecast."""
    lowest_temp: float
    highest_temp: float
    total_precip: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "lowestTemp": self.lowest_temp,
            "highestTemp": self.highest_temp,
            "totalPrecip": self.total_precip,
        }


def seconds_until_hour(now: datetime, hour: int) -> float:
    """Seconds from `now` until the next occurrence of hour:00 (local time)."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


def fill_unavailable(samples: SampleMap) -> Dict[ProviderId, ProviderSample]:
    """Replace every unavailable provider with the zero sample."""
    filled: Dict[ProviderId, ProviderSample] = {}
    for provider in ProviderId:
        sample = samples.get(provider)
        if sample is None:
            logger.warning(f"[fill_unavailable] {provider.name} unavailable - using zero sample")
            sample = ProviderSample.zero()
        filled[provider] = sample
    return filled


def fill_unavailable_week(
    weekly: Dict[ProviderId, Optional[List[Optional[ProviderSample]]]]
) -> Dict[ProviderId, List[ProviderSample]]:
    filled: Dict[ProviderId, List[ProviderSample]] = {}
    for provider in ProviderId:
        days = weekly.get(provider)
        if days is None:
            logger.warning(f"[fill_unavailable_week] {provider.name} unavailable - using zero week")
            days = []
        week = [d if d is not None else ProviderSample.zero() for d in days[:WEEK_DAYS]]
        week.extend(ProviderSample.zero() for _ in range(WEEK_DAYS - len(week)))
        filled[provider] = week
    return filled


class ForecastScheduler:
    """
    Runs hourly and weekly cycles against one engine instance and holds the
    most recently published results for the read API.
    """

    def __init__(
        self,
        settings: Settings,
        providers: Sequence[WeatherProvider],
        store: Optional[WeightStore] = None,
        ledger: Optional[HistoryLedger] = None
    ):
        self.settings = settings
        self.providers = list(providers)
        self.store = store or WeightStore()
        self.ledger = ledger or HistoryLedger()
        self.fusion = FusionEngine(self.store)
        self.adaptation = AdaptationEngine(
            self.store, self.ledger, learning_rate=settings.learning_rate
        )
        self.daily_overview = DailyOverview(
            lowest_temp=settings.overview_lowest_temp,
            highest_temp=settings.overview_highest_temp,
            total_precip=settings.overview_total_precip,
        )

        self._hourly_lock = asyncio.Lock()
        self._weekly_lock = asyncio.Lock()
        self._tasks: List[asyncio.Task] = []

        # One generation of samples kept as the next cycle's reference
        self.previous_samples: Optional[Dict[ProviderId, ProviderSample]] = None

        # Published state
        self.latest_samples: Optional[Dict[ProviderId, ProviderSample]] = None
        self.final_forecast: Optional[FusedForecast] = None
        self.hourly_forecast: Optional[FusedForecast] = None
        self.hourly_breakdown: Optional[Breakdown] = None
        self.weekly_forecast: Optional[List[FusedForecast]] = None
        self.last_hourly_run: Optional[datetime] = None
        self.last_weekly_run: Optional[datetime] = None

        logger.info(f"[ForecastScheduler] Initialized with {len(self.providers)} providers")

    async def run_hourly_cycle(self) -> bool:
        """
        Fetch -> adapt -> fuse -> publish.

        Returns:
            True if the cycle ran, False if skipped because one was in progress
        """
        if self._hourly_lock.locked():
            logger.warning("[ForecastScheduler] Hourly cycle still running - trigger skipped")
            return False

        async with self._hourly_lock:
            logger.info("[ForecastScheduler] Hourly cycle: fetching current samples...")
            fetched = await fetch_all_current(self.providers)
            available = sum(1 for s in fetched.values() if s is not None)
            logger.info(f"[ForecastScheduler] {available}/{len(ProviderId)} providers available")

            samples = fill_unavailable(fetched)

            if self.previous_samples is not None:
                logger.info("[ForecastScheduler] Adapting weights against previous cycle...")
                self.adaptation.adapt(self.previous_samples, samples)
            else:
                logger.info("[ForecastScheduler] First cycle - no reference yet, skipping adaptation")

            final, breakdown = self.fusion.fuse_with_breakdown(samples, self.store.get())

            self.final_forecast = final
            self.hourly_forecast = final
            self.hourly_breakdown = breakdown
            self.previous_samples = samples
            self.latest_samples = samples
            self.last_hourly_run = datetime.now()

            logger.info(f"[ForecastScheduler] Hourly forecast published: "
                        f"{final.temperature:.1f}C, rain={final.rain_probability:.2f}, "
                        f"snow={final.snow_probability:.2f}")
            return True

    async def run_weekly_cycle(self) -> bool:
        """
        Fetch 7-day samples -> fuse with the current weights -> publish.

        Returns:
            True if the cycle ran, False if skipped because one was in progress
        """
        if self._weekly_lock.locked():
            logger.warning("[ForecastScheduler] Weekly cycle still running - trigger skipped")
            return False

        async with self._weekly_lock:
            logger.info("[ForecastScheduler] Weekly cycle: fetching 7-day samples...")
            fetched = await fetch_all_weekly(self.providers)
            weekly = fill_unavailable_week(fetched)

            self.weekly_forecast = self.fusion.fuse_weekly(weekly)
            self.last_weekly_run = datetime.now()

            logger.info(f"[ForecastScheduler] Weekly forecast published: "
                        f"{[round(f.temperature, 1) for f in self.weekly_forecast]}")
            return True

    def snapshot(self) -> Dict[str, Any]:
        """The published read surface as one JSON-ready object."""
        hourly = None
        if self.hourly_forecast is not None and self.hourly_breakdown is not None:
            hourly = self.hourly_forecast.to_dict()
            hourly["calculation"] = breakdown_to_dict(self.hourly_breakdown)

        return {
            "forecasts": samples_to_dict(self.latest_samples) if self.latest_samples else None,
            "finalForecast": self.final_forecast.to_dict() if self.final_forecast else None,
            "hourlyForecast": hourly,
            "dailyOverview": self.daily_overview.to_dict(),
            "weights": weights_to_dict(self.store.get()),
            "weeklyForecast": (
                [f.to_dict() for f in self.weekly_forecast]
                if self.weekly_forecast is not None else None
            ),
        }

    # --- background loops -------------------------------------------------

    async def _guarded(self, name: str, cycle) -> None:
        try:
            await cycle()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Keep serving the last published state
            logger.error(f"[ForecastScheduler] {name} cycle failed: {e}", exc_info=True)

    async def _hourly_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.hourly_interval_seconds)
            await self._guarded("Hourly", self.run_hourly_cycle)

    async def _weekly_loop(self) -> None:
        while True:
            delay = seconds_until_hour(datetime.now(), self.settings.weekly_run_hour)
            logger.info(f"[ForecastScheduler] Weekly update scheduled in {delay:.0f}s")
            await asyncio.sleep(delay)
            await self._guarded("Weekly", self.run_weekly_cycle)

    async def _run(self) -> None:
        await self._guarded("Hourly", self.run_hourly_cycle)
        await self._guarded("Weekly", self.run_weekly_cycle)
        self._tasks.append(asyncio.create_task(self._hourly_loop()))
        self._tasks.append(asyncio.create_task(self._weekly_loop()))

    def start(self) -> None:
        """Run the initial cycles, then schedule the hourly and weekly loops."""
        if self._tasks:
            logger.warning("[ForecastScheduler] Already started")
            return
        logger.info("[ForecastScheduler] Starting update schedule...")
        self._tasks.append(asyncio.create_task(self._run()))

    async def stop(self) -> None:
        tasks = list(self._tasks)
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("[ForecastScheduler] Stopped")
