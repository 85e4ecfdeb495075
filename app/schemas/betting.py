from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict

class OddsQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    bookmaker: str
    price: float  # decimal odds

# driver name -> quotes, in bookmaker order
MarketOdds = Dict[str, List[OddsQuote]]

class BetRecommendation(BaseModel):
    driver: str
    bet_type: str               # Win | Place
    confidence: float
    expected_value: float
    best_odds: OddsQuote

class ValueOpportunity(BaseModel):
    driver: str
    predicted_probability: float
    market_odds: Optional[OddsQuote] = None
    value_ratio: float
    confidence: float

class RiskAnalysis(BaseModel):
    weather: float
    technical: float
    strategic: float

class MarketAnalysis(BaseModel):
    bookmakers: int = 0
    drivers_priced: int = 0
    average_overround: Optional[float] = None
    best_price_overround: Optional[float] = None

class BettingInsights(BaseModel):
    race: str
    recommended_bets: List[BetRecommendation]
    risk_analysis: RiskAnalysis
    value_opportunities: List[ValueOpportunity]
    market_analysis: MarketAnalysis
    degraded: bool = False
