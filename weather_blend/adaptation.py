"""
Adaptation Engine for Weather Blend

Adjusts the per-provider weights online. Each hourly cycle compares the
previous cycle's samples (the reference) with the freshly fetched ones (the
observation) and penalises every provider in proportion to how far its new
forecast moved:

    error_m  = |reference.m - observed.m|
    weight_m = max(0, weight_m - alpha * error_m)

then renormalizes each metric to sum to 1 and records an accuracy entry and
a weight snapshot in the HistoryLedger.

The reference is a provider's own prior output, not a ground-truth
observation. The "accuracy" recorded here is therefore agreement between
successive forecasts (consistency), not correctness.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional

from weather_blend.config import DEFAULT_LEARNING_RATE
from weather_blend.ledger import HistoryLedger, utc_now
from weather_blend.models import (
    METRICS,
    AccuracyEntry,
    AccuracyScore,
    ProviderId,
    SampleMap,
    WeightSnapshot,
)
from weather_blend.weights import WeightStore

logger = logging.getLogger(__name__)


def accuracy_percent(error: float) -> str:
    """Agreement score for one metric: max(0, (1 - error) * 100), one decimal."""
    return format(max(0.0, (1.0 - error) * 100.0), ".1f")


@dataclass
class AdaptationResult:
    """What one adapt() call did."""
    errors: Dict[ProviderId, Dict[str, float]] = field(default_factory=dict)
    accuracy: Optional[AccuracyEntry] = None
    snapshot: Optional[WeightSnapshot] = None

    @property
    def skipped(self):
        """Providers that were missing from either side."""
        return [p for p in ProviderId if p not in self.errors]


class AdaptationEngine:
    """
    Online weight updater.

    Owns all mutation of the WeightStore. The whole cycle (error, penalty,
    normalize, ledger appends) runs under the store lock so a concurrent
    reader sees either the old or the new weights.
    """

    def __init__(
        self,
        store: WeightStore,
        ledger: HistoryLedger,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        clock: Callable[[], datetime] = utc_now
    ):
        if learning_rate < 0:
            raise ValueError(f"learning_rate must be >= 0, got {learning_rate}")
        self.store = store
        self.ledger = ledger
        self.learning_rate = learning_rate
        self.clock = clock
        logger.info(f"[AdaptationEngine] Initialized with alpha={learning_rate}")

    def compute_errors(
        self,
        reference: SampleMap,
        observed: SampleMap
    ) -> Dict[ProviderId, Dict[str, float]]:
        """Absolute per-metric error for providers present on both sides."""
        errors: Dict[ProviderId, Dict[str, float]] = {}
        for provider in ProviderId:
            ref = reference.get(provider)
            obs = observed.get(provider)
            if ref is None or obs is None:
                logger.debug(f"[AdaptationEngine] {provider.name} missing, weights untouched")
                continue
            errors[provider] = {m: abs(ref.metric(m) - obs.metric(m)) for m in METRICS}
        return errors

    def adapt(self, reference: SampleMap, observed: SampleMap) -> AdaptationResult:
        """
        Run one adaptation cycle.

        Args:
            reference: Previous cycle's samples
            observed: This cycle's samples

        Returns:
            AdaptationResult with the errors and the two ledger entries
        """
        with self.store.lock:
            errors = self.compute_errors(reference, observed)

            penalties = {
                provider: {m: self.learning_rate * err for m, err in metric_errors.items()}
                for provider, metric_errors in errors.items()
            }
            self.store.apply(penalties)
            self.store.normalize()

            scores: Dict[ProviderId, AccuracyScore] = {}
            for provider in ProviderId:
                metric_errors = errors.get(provider)
                if metric_errors is None:
                    scores[provider] = AccuracyScore.missing()
                    continue
                scores[provider] = AccuracyScore(
                    temp_acc=accuracy_percent(metric_errors["temp"]),
                    rain_acc=accuracy_percent(metric_errors["rain"]),
                    snow_acc=accuracy_percent(metric_errors["snow"]),
                )

            now = self.clock()
            accuracy = AccuracyEntry(time=now, scores=scores)
            self.ledger.record_accuracy(accuracy)

            snapshot = WeightSnapshot(time=now, weights=self.store.get())
            self.ledger.record_weight_snapshot(snapshot)

        for provider, metric_errors in errors.items():
            logger.info(
                f"[AdaptationEngine] {provider.name}: "
                f"err temp={metric_errors['temp']:.2f} "
                f"rain={metric_errors['rain']:.2f} "
                f"snow={metric_errors['snow']:.2f} -> "
                f"w=({snapshot.weights[provider].temp:.3f}/"
                f"{snapshot.weights[provider].rain:.3f}/"
                f"{snapshot.weights[provider].snow:.3f})"
            )

        return AdaptationResult(errors=errors, accuracy=accuracy, snapshot=snapshot)
