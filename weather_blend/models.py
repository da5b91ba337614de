"""
Data model for the Weather Blend engine.

Everything that flows between the providers, the weight store, the fusion
and adaptation engines, and the history ledger is defined here. Values are
kept in one unit system: temperature in Celsius, rain and snow probability
in [0, 1].

JSON helpers (to_dict) produce the wire shape the HTTP layer publishes:
    sample/forecast -> {"temperature", "rainProbability", "snowProbability"}
    weights         -> {"temp", "rain", "snow"}
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

# Metric names as used on WeightTriple (weights) and ProviderSample (values)
METRICS = ("temp", "rain", "snow")
SAMPLE_FIELDS = {
    "temp": "temperature",
    "rain": "rain_probability",
    "snow": "snow_probability",
}
WIRE_FIELDS = {
    "temp": "temperature",
    "rain": "rainProbability",
    "snow": "snowProbability",
}


class ProviderId(Enum):
    """The closed set of weather providers. Values are the wire keys."""
    NWS = "providerNWS"
    OWM = "providerOWM"
    WB = "providerWB"


@dataclass(frozen=True)
class ProviderSample:
    """One provider's view of one time slot."""
    temperature: float
    rain_probability: float
    snow_probability: float

    @classmethod
    def zero(cls) -> "ProviderSample":
        return cls(temperature=0.0, rain_probability=0.0, snow_probability=0.0)

    def metric(self, name: str) -> float:
        return getattr(self, SAMPLE_FIELDS[name])

    def to_dict(self) -> Dict[str, float]:
        return {
            "temperature": self.temperature,
            "rainProbability": self.rain_probability,
            "snowProbability": self.snow_probability,
        }


@dataclass
class WeightTriple:
    """Per-provider weights, one per metric."""
    temp: float
    rain: float
    snow: float

    def metric(self, name: str) -> float:
        return getattr(self, name)

    def copy(self) -> "WeightTriple":
        return WeightTriple(self.temp, self.rain, self.snow)

    def to_dict(self) -> Dict[str, float]:
        return {"temp": self.temp, "rain": self.rain, "snow": self.snow}


@dataclass(frozen=True)
class FusedForecast:
    """Weighted sum across providers for one time slot."""
    temperature: float
    rain_probability: float
    snow_probability: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "temperature": self.temperature,
            "rainProbability": self.rain_probability,
            "snowProbability": self.snow_probability,
        }


@dataclass(frozen=True)
class Contribution:
    """One provider's share of one fused metric."""
    provider: ProviderId
    value: float
    weight: float
    contribution: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "value": self.value,
            "weight": self.weight,
            "contribution": self.contribution,
        }


# metric name ("temp"/"rain"/"snow") -> per-provider contributions
Breakdown = Dict[str, List[Contribution]]


def breakdown_to_dict(breakdown: Breakdown) -> Dict[str, List[Dict[str, Any]]]:
    return {
        WIRE_FIELDS[metric]: [c.to_dict() for c in rows]
        for metric, rows in breakdown.items()
    }


@dataclass(frozen=True)
class AccuracyScore:
    """Agreement percentages for one provider, formatted to one decimal."""
    temp_acc: str
    rain_acc: str
    snow_acc: str

    @classmethod
    def missing(cls) -> "AccuracyScore":
        return cls("0.0", "0.0", "0.0")

    def to_dict(self) -> Dict[str, str]:
        return {
            "tempAcc": self.temp_acc,
            "rainAcc": self.rain_acc,
            "snowAcc": self.snow_acc,
        }


@dataclass(frozen=True)
class AccuracyEntry:
    """
    One adaptation cycle's accuracy record.

    NOTE: the figures measure agreement between a provider's successive
    forecasts, not accuracy against an observation.
    """
    time: datetime
    scores: Dict[ProviderId, AccuracyScore] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"time": self.time.isoformat()}
        for provider, score in self.scores.items():
            entry[provider.value] = score.to_dict()
        return entry


@dataclass(frozen=True)
class WeightSnapshot:
    """Copy of the whole weight store when an adaptation cycle completes."""
    time: datetime
    weights: Dict[ProviderId, WeightTriple] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"time": self.time.isoformat()}
        for provider, triple in self.weights.items():
            entry[provider.value] = triple.to_dict()
        return entry


# Sample maps as exchanged with the providers: None means "unavailable"
SampleMap = Dict[ProviderId, Optional[ProviderSample]]
WeeklySampleMap = Dict[ProviderId, Optional[List[Optional[ProviderSample]]]]
WeightMap = Dict[ProviderId, WeightTriple]


def weights_to_dict(weights: WeightMap) -> Dict[str, Dict[str, float]]:
    return {provider.value: triple.to_dict() for provider, triple in weights.items()}


def samples_to_dict(samples: SampleMap) -> Dict[str, Optional[Dict[str, float]]]:
    return {
        provider.value: (sample.to_dict() if sample is not None else None)
        for provider, sample in samples.items()
    }
