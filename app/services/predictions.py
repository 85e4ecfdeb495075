"""Weighted multi-factor driver scoring.

Each driver gets six sub-scores in [0, 1] combined by a fixed weighted
average, scaled by the mean of three performance modifiers, and finally raised
to ``SCORE_EXPONENT`` to stretch the gap between close competitors. Every
optional input that is missing is replaced by ``NEUTRAL`` and counted against
the driver's data quality.
"""
from __future__ import annotations

import logging
import math
from statistics import fmean, pstdev, pvariance
from typing import Dict, List, Optional, Sequence, Tuple

from app.core.errors import MissingInput
from app.schemas.predictions import ConfidenceMetrics, DriverScore, PredictionResult
from app.schemas.races import PRACTICE_SESSIONS, Driver, DriverHistory, PracticeSummary, RaceContext, Weather
from app.services.cache import TTLCache, cache_key
from app.services.estimators import Estimators, NeutralEstimators

logger = logging.getLogger(__name__)

NEUTRAL = 0.5
SCORE_EXPONENT = 1.5

OVERALL_WEIGHTS = {
    "historical": 0.20,
    "practice": 0.25,
    "weather": 0.15,
    "track_specific": 0.15,
    "recent_form": 0.15,
    "qualifying": 0.10,
}

HISTORICAL_WEIGHTS = {
    "last_race": 0.3,
    "last_three_races": 0.3,
    "season_performance": 0.2,
    "track_history": 0.2,
}

SESSION_WEIGHTS = {"fp1": 0.2, "fp2": 0.3, "fp3": 0.5}

PRACTICE_METRIC_WEIGHTS = {
    "lap_time": 0.4,
    "consistency": 0.3,
    "tire_management": 0.3,
}

RELIABILITY_WEIGHTS = {
    "technical_dnfs": 0.4,
    "component_life": 0.3,
    "consistency_rate": 0.3,
}

DNF_WINDOW = 3              # races covered by Driver.technical_dnfs
TEMPERATURE_CEILING = 40.0  # celsius mapped to 1.0
CONSISTENCY_SCALE = 10.0    # 1% lap-time variation costs 0.1

CONFIDENCE_LEVELS = (("high", 0.85), ("medium", 0.65), ("low", 0.45))


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def _or_neutral(value: Optional[float]) -> float:
    return NEUTRAL if value is None else value


def normalize_lap_times(lap_times: Optional[Sequence[float]]) -> float:
    """``1 - (avg - fastest) / fastest``; NEUTRAL when there is nothing to compare."""
    if not lap_times:
        return NEUTRAL
    fastest = min(lap_times)
    if fastest <= 0:
        return NEUTRAL
    average = sum(lap_times) / len(lap_times)
    return _clamp(1 - (average - fastest) / fastest)


def consistency_score(lap_times: Optional[Sequence[float]]) -> float:
    if not lap_times:
        return NEUTRAL
    mean = fmean(lap_times)
    if mean <= 0:
        return NEUTRAL
    return _clamp(1 - CONSISTENCY_SCALE * pstdev(lap_times) / mean)


def tire_management_score(samples: Optional[Sequence[float]]) -> float:
    if not samples:
        return NEUTRAL
    return _clamp(fmean(samples))


def normalize_qualifying_position(position: Optional[int], total_drivers: int) -> float:
    if position is None:
        return NEUTRAL
    if total_drivers <= 1:
        return 1.0
    return _clamp(1 - (position - 1) / (total_drivers - 1))


def normalize_temperature(temperature: Optional[float]) -> float:
    if temperature is None:
        return NEUTRAL
    return _clamp(temperature / TEMPERATURE_CEILING)


def weighted_average(scores: Dict[str, float]) -> float:
    return sum(scores[key] * weight for key, weight in OVERALL_WEIGHTS.items())


def historical_score(driver: Driver) -> float:
    history = driver.history or DriverHistory()
    return sum(
        _or_neutral(getattr(history, field)) * weight
        for field, weight in HISTORICAL_WEIGHTS.items()
    )


def session_score(driver: Driver, summary: Optional[PracticeSummary]) -> float:
    if summary is None:
        return NEUTRAL
    laps = summary.lap_times.get(driver.name)
    return (
        normalize_lap_times(laps) * PRACTICE_METRIC_WEIGHTS["lap_time"]
        + consistency_score(laps) * PRACTICE_METRIC_WEIGHTS["consistency"]
        + tire_management_score(summary.tire_performance.get(driver.name))
        * PRACTICE_METRIC_WEIGHTS["tire_management"]
    )


def practice_score(driver: Driver, practice: Dict[str, PracticeSummary]) -> float:
    return sum(
        weight * session_score(driver, practice.get(session))
        for session, weight in SESSION_WEIGHTS.items()
    )


def weather_score(driver: Driver, weather: Optional[Weather]) -> float:
    rain_chance = weather.rain_chance if weather else None
    rain_prob = NEUTRAL if rain_chance is None else rain_chance / 100
    temp_factor = normalize_temperature(weather.temperature if weather else None)
    wet = _or_neutral(driver.wet_performance)
    sensitivity = _or_neutral(driver.temperature_sensitivity)
    return wet * rain_prob + sensitivity * temp_factor * (1 - rain_prob)


def track_score(driver: Driver) -> float:
    return _or_neutral(driver.history.track_history if driver.history else None)


def reliability_score(driver: Driver) -> float:
    if driver.technical_dnfs is None:
        dnf_score = NEUTRAL
    else:
        dnf_score = 1 - min(driver.technical_dnfs, DNF_WINDOW) / DNF_WINDOW
    return (
        dnf_score * RELIABILITY_WEIGHTS["technical_dnfs"]
        + _or_neutral(driver.component_life) * RELIABILITY_WEIGHTS["component_life"]
        + _or_neutral(driver.consistency_rate) * RELIABILITY_WEIGHTS["consistency_rate"]
    )


def team_performance_score(driver: Driver, context: RaceContext) -> float:
    rating = context.team_performance.get(driver.team)
    return NEUTRAL if rating is None else _clamp(rating)


def _tire_samples(driver: Driver, context: RaceContext) -> List[float]:
    samples: List[float] = []
    for session in PRACTICE_SESSIONS:
        summary = context.practice.get(session)
        if summary is not None:
            samples.extend(summary.tire_performance.get(driver.name) or [])
    return samples


def strategy_efficiency_score(driver: Driver, context: RaceContext) -> float:
    return tire_management_score(_tire_samples(driver, context))


def final_score(sub_scores: Dict[str, float], reliability: float,
                team_performance: float, strategy_efficiency: float) -> float:
    base = weighted_average(sub_scores)
    modifier = (reliability + team_performance + strategy_efficiency) / 3
    return (base * modifier) ** SCORE_EXPONENT


def data_quality(driver: Driver, context: RaceContext) -> float:
    """Share of the driver's optional inputs that were actually supplied."""
    history = driver.history or DriverHistory()
    weather = context.weather or Weather()
    has_laps = any(
        summary.lap_times.get(driver.name) for summary in context.practice.values()
    )
    supplied = [
        driver.recent_form is not None,
        driver.qualifying_position is not None,
        history.last_race is not None,
        history.last_three_races is not None,
        history.season_performance is not None,
        history.track_history is not None,
        driver.wet_performance is not None,
        driver.temperature_sensitivity is not None,
        driver.technical_dnfs is not None,
        driver.component_life is not None,
        driver.consistency_rate is not None,
        has_laps,
        bool(_tire_samples(driver, context)),
        weather.rain_chance is not None,
        weather.temperature is not None,
    ]
    return sum(supplied) / len(supplied)


def calculate_confidence(sub_scores: Dict[str, float], quality: float) -> float:
    consistency = 1 - math.sqrt(pvariance(list(sub_scores.values())))
    return (consistency + quality) / 2


def confidence_level(value: float) -> str:
    for level, threshold in CONFIDENCE_LEVELS:
        if value >= threshold:
            return level
    return "insufficient"


class PredictionEngine:
    def __init__(self, cache: Optional[TTLCache] = None, estimators: Optional[Estimators] = None):
        self.cache = cache if cache is not None else TTLCache()
        self.estimators = estimators if estimators is not None else NeutralEstimators()

    def score_driver(self, driver: Driver, context: RaceContext) -> DriverScore:
        sub_scores = {
            "historical": historical_score(driver),
            "practice": practice_score(driver, context.practice),
            "weather": weather_score(driver, context.weather),
            "track_specific": track_score(driver),
            "recent_form": _or_neutral(driver.recent_form),
            "qualifying": normalize_qualifying_position(driver.qualifying_position, len(context.drivers)),
        }
        reliability = reliability_score(driver)
        team_performance = team_performance_score(driver, context)
        strategy_efficiency = strategy_efficiency_score(driver, context)
        quality = data_quality(driver, context)

        return DriverScore(
            name=driver.name,
            team=driver.team,
            score=final_score(sub_scores, reliability, team_performance, strategy_efficiency),
            confidence=calculate_confidence(sub_scores, quality),
            data_quality=quality,
            metrics={
                **sub_scores,
                "reliability": reliability,
                "team_performance": team_performance,
                "strategy_efficiency": strategy_efficiency,
            },
        )

    def compute_driver_scores(self, context: RaceContext) -> List[DriverScore]:
        if not context.drivers:
            raise MissingInput(f"Race '{context.name}' has no driver roster to score")
        return [self.score_driver(driver, context) for driver in context.drivers]

    @staticmethod
    def rank(scores: List[DriverScore]) -> List[DriverScore]:
        return sorted(scores, key=lambda s: (-s.score, s.name))

    def accuracy_factors(self, context: RaceContext, scores: List[DriverScore]) -> Dict[str, float]:
        has_history = any(d.history is not None for d in context.drivers)
        return {
            "weather_reliability": self.estimators.weather_reliability(context) if context.weather else NEUTRAL,
            "historical_accuracy": self.estimators.historical_accuracy(context) if has_history else NEUTRAL,
            "data_quality": fmean(s.data_quality for s in scores) if scores else NEUTRAL,
        }

    def calculate_accuracy_index(self, context: RaceContext, scores: List[DriverScore]) -> Tuple[float, Dict[str, float]]:
        factors = self.accuracy_factors(context, scores)
        return sum(factors.values()) / len(factors), factors

    def generate_predictions(self, context: RaceContext) -> PredictionResult:
        key = cache_key("predictions", context.name)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("predictions for %s served from cache", context.name)
            return cached.model_copy(deep=True)

        order = self.rank(self.compute_driver_scores(context))
        accuracy_index, factors = self.calculate_accuracy_index(context, order)
        mean_confidence = fmean(s.confidence for s in order)

        result = PredictionResult(
            race=context.name,
            winner=order[0],
            finishing_order=order,
            accuracy_index=accuracy_index,
            confidence_metrics=ConfidenceMetrics(
                mean_confidence=mean_confidence,
                level=confidence_level(mean_confidence),
                **factors,
            ),
        )
        logger.info("predicted %s: winner %s (accuracy %.2f)", context.name, result.winner.name, accuracy_index)
        self.cache.set(key, result, "predictions")
        return result.model_copy(deep=True)
