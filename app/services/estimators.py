"""Swappable estimators for the factors that have no real model behind them yet.

The scoring and betting services never draw random numbers themselves; they
ask an ``Estimators`` object. Production runs use ``PlaceholderEstimators``
and tests pass stubs with fixed values.
"""
from __future__ import annotations

import random
from typing import Dict, List, Optional

from app.schemas.predictions import DriverScore
from app.schemas.races import RaceContext


class Estimators:
    """Base estimators: score-share probabilities and neutral placeholders."""

    def win_probabilities(self, scores: List[DriverScore]) -> Dict[str, float]:
        total = sum(s.score for s in scores)
        if total <= 0:
            even = 1.0 / len(scores) if scores else 0.0
            return {s.name: even for s in scores}
        return {s.name: s.score / total for s in scores}

    def technical_risk(self, context: RaceContext) -> float:
        return 0.5

    def strategic_risk(self, context: RaceContext) -> float:
        return 0.5

    def weather_reliability(self, context: RaceContext) -> float:
        return 0.5

    def historical_accuracy(self, context: RaceContext) -> float:
        return 0.5


class NeutralEstimators(Estimators):
    pass


class PlaceholderEstimators(Estimators):
    """Uniform draws in [0, 1) from a private generator."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def technical_risk(self, context: RaceContext) -> float:
        return self._rng.random()

    def strategic_risk(self, context: RaceContext) -> float:
        return self._rng.random()

    def weather_reliability(self, context: RaceContext) -> float:
        return self._rng.random()

    def historical_accuracy(self, context: RaceContext) -> float:
        return self._rng.random()


def build_estimators(kind: str = "placeholder", seed: Optional[int] = None) -> Estimators:
    if kind == "placeholder":
        return PlaceholderEstimators(seed)
    if kind == "neutral":
        return NeutralEstimators()
    raise ValueError(f"Unknown estimators {kind!r} (expected 'placeholder' or 'neutral')")
