"""Expected-value betting analysis on top of the driver scores."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from app.schemas.betting import (
    BetRecommendation,
    BettingInsights,
    MarketAnalysis,
    MarketOdds,
    OddsQuote,
    RiskAnalysis,
    ValueOpportunity,
)
from app.schemas.predictions import DriverScore
from app.schemas.races import RaceContext
from app.services.cache import TTLCache, cache_key
from app.services.predictions import NEUTRAL, PredictionEngine

logger = logging.getLogger(__name__)

# A bet is recommended only when probability * best price clears this.
VALUE_THRESHOLD = 1.1
WIN_PROBABILITY = 0.5


def find_best_odds(quotes: List[OddsQuote]) -> Optional[OddsQuote]:
    """Highest price; the first quote wins a tie."""
    best = None
    for quote in quotes:
        if best is None or quote.price > best.price:
            best = quote
    return best


def expected_value(probability: float, quotes: List[OddsQuote]) -> float:
    if not quotes:
        return 0.0
    return probability * max(q.price for q in quotes)


def has_positive_expected_value(ev: float) -> bool:
    return ev > VALUE_THRESHOLD


def bet_type(probability: float) -> str:
    return "Win" if probability > WIN_PROBABILITY else "Place"


def analyze_market_efficiency(odds: Optional[MarketOdds]) -> MarketAnalysis:
    """Bookmaker margins: per-book overround and the overround of best prices."""
    if not odds:
        return MarketAnalysis()

    per_book: Dict[str, float] = {}
    best_prices: List[float] = []
    for quotes in odds.values():
        priced = [q for q in quotes if q.price > 0]
        for q in priced:
            per_book[q.bookmaker] = per_book.get(q.bookmaker, 0.0) + 1 / q.price
        best = find_best_odds(priced)
        if best is not None:
            best_prices.append(best.price)

    return MarketAnalysis(
        bookmakers=len(per_book),
        drivers_priced=len(best_prices),
        average_overround=sum(per_book.values()) / len(per_book) if per_book else None,
        best_price_overround=sum(1 / p for p in best_prices) if best_prices else None,
    )


class BettingAnalyzer:
    def __init__(self, engine: PredictionEngine, cache: Optional[TTLCache] = None):
        self.engine = engine
        self.cache = cache if cache is not None else engine.cache

    @property
    def estimators(self):
        return self.engine.estimators

    def _scores(self, context: RaceContext) -> Dict[str, DriverScore]:
        return {s.name: s for s in self.engine.compute_driver_scores(context)}

    def recommend_bets(self, context: RaceContext, odds: Optional[MarketOdds]) -> List[BetRecommendation]:
        if not odds:
            logger.warning("market odds not available for %s", context.name)
            return []

        scores = self._scores(context)
        probabilities = self.estimators.win_probabilities(list(scores.values()))
        bets = []
        for driver in context.drivers:
            quotes = odds.get(driver.name) or []
            if not quotes:
                continue
            probability = probabilities.get(driver.name, 0.0)
            ev = expected_value(probability, quotes)
            if has_positive_expected_value(ev):
                bets.append(BetRecommendation(
                    driver=driver.name,
                    bet_type=bet_type(probability),
                    confidence=scores[driver.name].confidence,
                    expected_value=ev,
                    best_odds=find_best_odds(quotes),
                ))
        return bets

    def find_value_bets(self, context: RaceContext, odds: Optional[MarketOdds]) -> List[ValueOpportunity]:
        odds = odds or {}
        scores = self._scores(context)
        probabilities = self.estimators.win_probabilities(list(scores.values()))
        opportunities = []
        for driver in context.drivers:
            best = find_best_odds(odds.get(driver.name) or [])
            probability = probabilities.get(driver.name, 0.0)
            opportunities.append(ValueOpportunity(
                driver=driver.name,
                predicted_probability=probability,
                market_odds=best,
                value_ratio=probability * best.price if best else 0.0,
                confidence=scores[driver.name].confidence,
            ))
        return sorted(opportunities, key=lambda o: (-o.value_ratio, o.driver))

    def analyze_risks(self, context: RaceContext) -> RiskAnalysis:
        rain_chance = context.weather.rain_chance if context.weather else None
        return RiskAnalysis(
            weather=NEUTRAL if rain_chance is None else rain_chance / 100,
            technical=self.estimators.technical_risk(context),
            strategic=self.estimators.strategic_risk(context),
        )

    def analyze_betting_factors(self, context: RaceContext, odds: Optional[MarketOdds]) -> BettingInsights:
        key = cache_key("betting", context.name)
        cached = self.cache.get(key)
        if cached is not None:
            return cached.model_copy(deep=True)

        insights = BettingInsights(
            race=context.name,
            recommended_bets=self.recommend_bets(context, odds),
            risk_analysis=self.analyze_risks(context),
            value_opportunities=self.find_value_bets(context, odds),
            market_analysis=analyze_market_efficiency(odds),
        )
        logger.info("%d recommended bets for %s", len(insights.recommended_bets), context.name)
        self.cache.set(key, insights, "predictions")
        return insights.model_copy(deep=True)

    def degraded_insights(self, context: RaceContext) -> BettingInsights:
        """Neutral insights for when the odds provider could not be reached."""
        return BettingInsights(
            race=context.name,
            recommended_bets=[],
            risk_analysis=RiskAnalysis(weather=NEUTRAL, technical=NEUTRAL, strategic=NEUTRAL),
            value_opportunities=[],
            market_analysis=MarketAnalysis(),
            degraded=True,
        )
