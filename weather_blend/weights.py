"""
Weight Store for the Weather Blend engine.

Holds one WeightTriple per provider. This is the only mutable state the
engine owns. Reads return copies; mutation goes through apply() followed by
normalize(), both normally driven by the AdaptationEngine while it holds
`lock` for the whole cycle.
"""

import logging
import threading
from typing import Dict, Mapping, Optional

from weather_blend.models import METRICS, ProviderId, WeightMap, WeightTriple

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: Dict[ProviderId, WeightTriple] = {
    ProviderId.NWS: WeightTriple(temp=0.33, rain=0.33, snow=0.33),
    ProviderId.OWM: WeightTriple(temp=0.33, rain=0.33, snow=0.33),
    ProviderId.WB: WeightTriple(temp=0.34, rain=0.34, snow=0.34),
}


def _copy_weights(weights: Mapping[ProviderId, WeightTriple]) -> WeightMap:
    return {provider: weights[provider].copy() for provider in ProviderId}


def normalize_weights(weights: WeightMap) -> WeightMap:
    """
    Rescale in place so each metric sums to 1 across providers.

    A metric whose weights sum to exactly 0 is left at 0.
    """
    for metric in METRICS:
        total = sum(getattr(weights[p], metric) for p in ProviderId)
        if total == 0:
            total = 1.0
        for provider in ProviderId:
            triple = weights[provider]
            setattr(triple, metric, getattr(triple, metric) / total)
    return weights


class WeightStore:
    """Per-provider, per-metric weights guarded by a re-entrant lock."""

    def __init__(self, initial: Optional[Mapping[ProviderId, WeightTriple]] = None):
        self.lock = threading.RLock()
        self._weights: WeightMap = _copy_weights(initial or DEFAULT_WEIGHTS)
        logger.info(f"[WeightStore] Initialized: {self._describe()}")

    def get(self) -> WeightMap:
        """Snapshot of the current weights."""
        with self.lock:
            return _copy_weights(self._weights)

    def apply(self, deltas: Mapping[ProviderId, Mapping[str, float]]) -> None:
        """
        Subtract per-metric penalties, clamping each weight at 0.

        Must be followed by normalize() before the weights are exposed.
        """
        with self.lock:
            for provider, metric_deltas in deltas.items():
                triple = self._weights[provider]
                for metric, delta in metric_deltas.items():
                    current = getattr(triple, metric)
                    setattr(triple, metric, max(0.0, current - delta))

    def normalize(self) -> None:
        with self.lock:
            normalize_weights(self._weights)

    def override(self, weights: Mapping[ProviderId, WeightTriple]) -> None:
        """Replace all weights (tests and resets only)."""
        for provider in ProviderId:
            if provider not in weights:
                raise KeyError(f"Missing weights for {provider.value}")
            triple = weights[provider]
            for metric in METRICS:
                if getattr(triple, metric) < 0:
                    raise ValueError(
                        f"Negative {metric} weight for {provider.value}: "
                        f"{getattr(triple, metric)}"
                    )
        with self.lock:
            self._weights = _copy_weights(weights)
            logger.info(f"[WeightStore] Weights overridden: {self._describe()}")

    def reset(self) -> None:
        self.override(DEFAULT_WEIGHTS)

    def _describe(self) -> str:
        return ", ".join(
            f"{p.name}=({t.temp:.3f}/{t.rain:.3f}/{t.snow:.3f})"
            for p, t in self._weights.items()
        )
