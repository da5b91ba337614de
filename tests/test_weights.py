"""Tests for the WeightStore and weight normalization."""

import logging

import pytest

from weather_blend.models import METRICS, ProviderId, WeightTriple
from weather_blend.weights import DEFAULT_WEIGHTS, WeightStore, normalize_weights

logger = logging.getLogger(__name__)


def metric_sum(weights, metric):
    return sum(getattr(weights[p], metric) for p in ProviderId)


class TestDefaults:

    def test_default_weights_sum_to_one(self):
        for metric in METRICS:
            assert metric_sum(DEFAULT_WEIGHTS, metric) == pytest.approx(1.0)

    def test_store_starts_with_defaults(self, store):
        weights = store.get()
        assert weights[ProviderId.NWS].temp == 0.33
        assert weights[ProviderId.OWM].rain == 0.33
        assert weights[ProviderId.WB].snow == 0.34


class TestWeightStore:

    def test_get_returns_a_copy(self, store):
        """Mutating a snapshot must not leak into the store."""
        snapshot = store.get()
        snapshot[ProviderId.NWS].temp = 99.0

        assert store.get()[ProviderId.NWS].temp == 0.33

    def test_apply_subtracts_and_clamps_at_zero(self, store):
        store.apply({
            ProviderId.NWS: {"temp": 0.03},
            ProviderId.OWM: {"rain": 5.0},
        })
        weights = store.get()
        logger.info(f"[TEST] After apply: {weights}")

        assert weights[ProviderId.NWS].temp == pytest.approx(0.30)
        assert weights[ProviderId.OWM].rain == 0.0, "weights never go negative"
        assert weights[ProviderId.WB].temp == 0.34, "untouched providers keep their weight"

    def test_normalize_rescales_each_metric(self, store):
        store.apply({ProviderId.NWS: {"temp": 0.13}})
        store.normalize()
        weights = store.get()

        assert metric_sum(weights, "temp") == pytest.approx(1.0)
        assert weights[ProviderId.NWS].temp == pytest.approx(0.20 / 0.87)

    def test_normalize_leaves_all_zero_metric_at_zero(self, store):
        store.apply({p: {"snow": 1.0} for p in ProviderId})
        store.normalize()
        weights = store.get()

        for p in ProviderId:
            assert weights[p].snow == 0.0
        assert metric_sum(weights, "temp") == pytest.approx(1.0)

    def test_override_replaces_weights(self, store):
        store.override({p: WeightTriple(0.5, 0.25, 0.0) for p in ProviderId})
        assert store.get()[ProviderId.WB].rain == 0.25

    def test_override_rejects_missing_provider(self, store):
        with pytest.raises(KeyError):
            store.override({ProviderId.NWS: WeightTriple(1.0, 1.0, 1.0)})

    def test_override_rejects_negative_weight(self, store):
        weights = {p: WeightTriple(0.3, 0.3, 0.3) for p in ProviderId}
        weights[ProviderId.OWM] = WeightTriple(-0.1, 0.3, 0.3)
        with pytest.raises(ValueError):
            store.override(weights)

    def test_reset_restores_defaults(self, store):
        store.override({p: WeightTriple(1.0, 0.0, 0.0) for p in ProviderId})
        store.reset()
        assert store.get()[ProviderId.WB].temp == 0.34


class TestNormalizeWeights:

    def test_normalizes_in_place(self):
        weights = {
            ProviderId.NWS: WeightTriple(1.0, 2.0, 0.0),
            ProviderId.OWM: WeightTriple(1.0, 1.0, 0.0),
            ProviderId.WB: WeightTriple(2.0, 1.0, 0.0),
        }
        result = normalize_weights(weights)

        assert result is weights
        assert weights[ProviderId.WB].temp == pytest.approx(0.5)
        assert weights[ProviderId.NWS].rain == pytest.approx(0.5)
        assert weights[ProviderId.NWS].snow == 0.0
