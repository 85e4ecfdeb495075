from typing import List, Optional
from pydantic import BaseModel

from app.schemas.betting import BettingInsights
from app.schemas.predictions import PredictionResult

class CycleWarning(BaseModel):
    component: str              # odds | betting
    kind: str                   # upstream_unavailable | rate_limited
    message: str
    retryable: bool = False

class CycleResult(BaseModel):
    predictions: PredictionResult
    betting: Optional[BettingInsights] = None
    warnings: List[CycleWarning] = []
