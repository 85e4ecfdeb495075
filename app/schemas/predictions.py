from typing import Dict, List
from pydantic import BaseModel, ConfigDict

class DriverScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    team: str
    score: float
    confidence: float
    data_quality: float
    metrics: Dict[str, float]   # six sub-scores + reliability, team_performance, strategy_efficiency

class ConfidenceMetrics(BaseModel):
    mean_confidence: float
    level: str                  # high | medium | low | insufficient
    weather_reliability: float
    historical_accuracy: float
    data_quality: float

class PredictionResult(BaseModel):
    race: str
    winner: DriverScore
    finishing_order: List[DriverScore]
    accuracy_index: float
    confidence_metrics: ConfidenceMetrics
