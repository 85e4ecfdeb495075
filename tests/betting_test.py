import pytest

from app.schemas.betting import MarketAnalysis, OddsQuote
from app.schemas.races import Driver, RaceContext, Weather
from app.services.betting import (
    VALUE_THRESHOLD,
    BettingAnalyzer,
    analyze_market_efficiency,
    bet_type,
    find_best_odds,
    has_positive_expected_value,
)
from app.services.estimators import Estimators
from app.services.predictions import PredictionEngine
from conftest import FixedEstimators


def q(bookmaker, price):
    return OddsQuote(bookmaker=bookmaker, price=price)


@pytest.fixture
def context():
    return RaceContext(
        name="Silverstone",
        drivers=[
            Driver(name="Alpha", team="A", recent_form=0.9),
            Driver(name="Bravo", team="B", recent_form=0.4),
            Driver(name="Charlie", team="C"),
        ],
        weather=Weather(rain_chance=40, temperature=18),
    )


def analyzer_for(probabilities, **kwargs):
    engine = PredictionEngine(estimators=FixedEstimators(probabilities=probabilities, **kwargs))
    return BettingAnalyzer(engine)


def test_threshold_is_strict():
    assert VALUE_THRESHOLD == 1.1
    assert not has_positive_expected_value(1.1)
    assert has_positive_expected_value(1.2)

def test_bet_type():
    assert bet_type(0.6) == "Win"
    assert bet_type(0.5) == "Place"

def test_best_odds_prefers_first_on_tie():
    assert find_best_odds([q("x", 3.0), q("y", 3.0), q("z", 2.0)]) == q("x", 3.0)
    assert find_best_odds([]) is None

def test_ev_filter(context):
    analyzer = analyzer_for({"Alpha": 0.6, "Bravo": 0.4, "Charlie": 0.0})
    odds = {"Alpha": [q("b1", 1.8), q("b2", 2.0)], "Bravo": [q("b1", 2.0)]}
    bets = analyzer.recommend_bets(context, odds)
    assert [b.driver for b in bets] == ["Alpha"]
    alpha = bets[0]
    assert alpha.expected_value == pytest.approx(1.2)
    assert alpha.bet_type == "Win"
    assert alpha.best_odds == q("b2", 2.0)

def test_place_bet_when_probability_low(context):
    analyzer = analyzer_for({"Alpha": 0.0, "Bravo": 0.3, "Charlie": 0.0})
    bets = analyzer.recommend_bets(context, {"Bravo": [q("b1", 4.0)]})
    assert [(b.driver, b.bet_type) for b in bets] == [("Bravo", "Place")]

def test_recommendation_confidence_comes_from_driver_score(context):
    analyzer = analyzer_for({"Alpha": 0.6})
    scores = {s.name: s for s in analyzer.engine.compute_driver_scores(context)}
    bet = analyzer.recommend_bets(context, {"Alpha": [q("b1", 2.0)]})[0]
    assert bet.confidence == scores["Alpha"].confidence

def test_no_odds_no_bets(context):
    analyzer = analyzer_for({"Alpha": 0.9})
    assert analyzer.recommend_bets(context, None) == []
    assert analyzer.recommend_bets(context, {}) == []
    assert analyzer.recommend_bets(context, {"Alpha": []}) == []

def test_value_bets_list_every_driver(context):
    analyzer = analyzer_for({"Alpha": 0.6, "Bravo": 0.4, "Charlie": 0.1})
    odds = {"Alpha": [q("b1", 2.0)], "Bravo": [q("b1", 2.5), q("b2", 2.75)]}
    values = analyzer.find_value_bets(context, odds)
    assert [v.driver for v in values] == ["Alpha", "Bravo", "Charlie"]
    assert values[0].value_ratio == pytest.approx(1.2)
    # not recommendable, still listed
    assert values[1].value_ratio == pytest.approx(1.1)
    assert values[1].market_odds == q("b2", 2.75)
    assert analyzer.recommend_bets(context, odds)[0].driver == "Alpha"
    assert len(analyzer.recommend_bets(context, odds)) == 1
    assert values[2].market_odds is None
    assert values[2].value_ratio == 0.0

def test_value_bets_sorted_by_ratio(context):
    analyzer = analyzer_for({"Alpha": 0.2, "Bravo": 0.5, "Charlie": 0.3})
    odds = {name: [q("b1", 2.0)] for name in ("Alpha", "Bravo", "Charlie")}
    values = analyzer.find_value_bets(context, odds)
    assert [v.driver for v in values] == ["Bravo", "Charlie", "Alpha"]

def test_value_bets_without_odds(context):
    values = analyzer_for({"Alpha": 0.6}).find_value_bets(context, None)
    assert len(values) == 3
    assert all(v.value_ratio == 0.0 and v.market_odds is None for v in values)

def test_risks(context):
    risks = analyzer_for(None, technical=0.25, strategic=0.75).analyze_risks(context)
    assert risks.weather == pytest.approx(0.4)
    assert risks.technical == 0.25
    assert risks.strategic == 0.75

def test_weather_risk_defaults(context):
    analyzer = analyzer_for(None)
    assert analyzer.analyze_risks(context.model_copy(update={"weather": None})).weather == 0.5
    dry = context.model_copy(update={"weather": Weather(rain_chance=0)})
    assert analyzer.analyze_risks(dry).weather == 0.0

def test_market_efficiency():
    odds = {"Alpha": [q("b1", 2.0), q("b2", 2.5)], "Bravo": [q("b1", 2.0)], "Charlie": []}
    market = analyze_market_efficiency(odds)
    assert market.bookmakers == 2
    assert market.drivers_priced == 2
    assert market.average_overround == pytest.approx((1.0 + 0.4) / 2)
    assert market.best_price_overround == pytest.approx(0.4 + 0.5)
    assert analyze_market_efficiency(None) == MarketAnalysis()

def test_betting_factors_cached(context):
    analyzer = analyzer_for({"Alpha": 0.6})
    first = analyzer.analyze_betting_factors(context, {"Alpha": [q("b1", 2.0)]})
    assert [b.driver for b in first.recommended_bets] == ["Alpha"]
    assert not first.degraded
    again = analyzer.analyze_betting_factors(context, {})
    assert again == first

def test_degraded_insights(context):
    insights = analyzer_for(None).degraded_insights(context)
    assert insights.degraded
    assert insights.recommended_bets == []
    assert insights.value_opportunities == []
    assert insights.risk_analysis.weather == 0.5
    assert insights.risk_analysis.technical == 0.5

def test_default_probabilities_share_the_field(context):
    engine = PredictionEngine()
    probs = Estimators().win_probabilities(engine.compute_driver_scores(context))
    assert sum(probs.values()) == pytest.approx(1.0)
    assert probs["Alpha"] > probs["Bravo"]
