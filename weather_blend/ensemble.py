"""
Weighted Ensemble (Fusion) Engine for Weather Blend

Blends the samples of all providers into one forecast:

    result[m] = sum over providers of weight[p].m * sample[p].m

for m in (temperature, rain probability, snow probability).

An unavailable provider counts as an all-zero sample. It keeps its weight
share and contributes nothing, so a missing provider pulls the blend toward
zero. There is no missing-data compensation.

The weekly blend repeats the computation for each day index 0..6 with the
same current weights; weights are not per-day.
"""

import logging
import numpy as np
from typing import List, Mapping, Optional, Sequence, Tuple

from weather_blend.models import (
    METRICS,
    Breakdown,
    Contribution,
    FusedForecast,
    ProviderId,
    ProviderSample,
    SampleMap,
    WeeklySampleMap,
    WeightMap,
)
from weather_blend.weights import WeightStore

logger = logging.getLogger(__name__)

WEEK_DAYS = 7

PROVIDERS: Tuple[ProviderId, ...] = tuple(ProviderId)


def _value_matrix(samples: Mapping[ProviderId, Optional[ProviderSample]]) -> np.ndarray:
    """Rows are providers (enum order), columns are metrics."""
    rows = []
    for provider in PROVIDERS:
        sample = samples.get(provider) or ProviderSample.zero()
        rows.append([sample.metric(m) for m in METRICS])
    return np.array(rows, dtype=float)


def _weight_matrix(weights: WeightMap) -> np.ndarray:
    return np.array(
        [[weights[p].metric(m) for m in METRICS] for p in PROVIDERS],
        dtype=float,
    )


def _to_forecast(totals: np.ndarray) -> FusedForecast:
    return FusedForecast(
        temperature=float(totals[0]),
        rain_probability=float(totals[1]),
        snow_probability=float(totals[2]),
    )


class FusionEngine:
    """
    Weighted-sum fusion over the closed provider set.

    Reads weights from the WeightStore (or takes an explicit weight map) and
    never mutates anything.
    """

    def __init__(self, store: WeightStore):
        self.store = store

    def _resolve(self, weights: Optional[WeightMap]) -> WeightMap:
        return weights if weights is not None else self.store.get()

    def fuse(self, samples: SampleMap, weights: Optional[WeightMap] = None) -> FusedForecast:
        """
        Blend one time slot.

        Args:
            samples: ProviderId -> ProviderSample, None (or missing) if unavailable
            weights: Explicit weights; defaults to a snapshot of the store

        Returns:
            FusedForecast
        """
        w = self._resolve(weights)
        totals = (_value_matrix(samples) * _weight_matrix(w)).sum(axis=0)
        return _to_forecast(totals)

    def fuse_with_breakdown(
        self,
        samples: SampleMap,
        weights: Optional[WeightMap] = None
    ) -> Tuple[FusedForecast, Breakdown]:
        """
        Blend one time slot and report each provider's contribution.

        Every provider appears in the breakdown. Unavailable ones show a
        value and contribution of 0 with their configured weight.
        """
        w = self._resolve(weights)
        values = _value_matrix(samples)
        weight_m = _weight_matrix(w)
        contributions = values * weight_m

        breakdown: Breakdown = {}
        for col, metric in enumerate(METRICS):
            breakdown[metric] = [
                Contribution(
                    provider=provider,
                    value=float(values[row, col]),
                    weight=float(weight_m[row, col]),
                    contribution=float(contributions[row, col]),
                )
                for row, provider in enumerate(PROVIDERS)
            ]

        missing = [p.name for p in PROVIDERS if samples.get(p) is None]
        if missing:
            logger.warning(f"[FusionEngine] Blending with zero samples for: {', '.join(missing)}")

        return _to_forecast(contributions.sum(axis=0)), breakdown

    def fuse_weekly(
        self,
        weekly: WeeklySampleMap,
        weights: Optional[WeightMap] = None
    ) -> List[FusedForecast]:
        """
        Blend the 7-day horizon, one day index at a time, with one weight set.

        A missing provider list, or a missing day within a list, is the zero
        sample. Always returns exactly 7 forecasts.
        """
        w = self._resolve(weights)
        result: List[FusedForecast] = []
        for day in range(WEEK_DAYS):
            day_samples = {
                provider: _day_sample(weekly.get(provider), day)
                for provider in PROVIDERS
            }
            result.append(self.fuse(day_samples, w))

        logger.debug(f"[FusionEngine] Weekly blend: "
                     f"{[round(f.temperature, 1) for f in result]}")
        return result


def _day_sample(
    days: Optional[Sequence[Optional[ProviderSample]]],
    index: int
) -> Optional[ProviderSample]:
    if not days or index >= len(days):
        return None
    return days[index]
