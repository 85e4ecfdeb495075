from fastapi import APIRouter, Depends, Query
from app.api.deps import get_analyzer, get_cache, get_cycle, get_engine, get_gateway
from app.schemas.betting import BettingInsights
from app.schemas.cycle import CycleResult
from app.schemas.predictions import PredictionResult
from app.schemas.races import RaceContext
from app.services.betting import BettingAnalyzer
from app.services.cache import TTLCache
from app.services.cycle import PredictionCycle
from app.services.odds import OddsGateway
from app.services.predictions import PredictionEngine

router = APIRouter()

@router.post("/predictions", response_model=PredictionResult)
def race_prediction(context: RaceContext, engine: PredictionEngine = Depends(get_engine)):
    return engine.generate_predictions(context)

@router.post("/betting", response_model=BettingInsights)
def race_betting(context: RaceContext,
                 analyzer: BettingAnalyzer = Depends(get_analyzer),
                 gateway: OddsGateway = Depends(get_gateway)):
    # provider failures surface through the exception handlers in app.main
    odds = gateway.fetch_odds()
    return analyzer.analyze_betting_factors(context, odds)

@router.post("/cycle", response_model=CycleResult)
def race_cycle(context: RaceContext, cycle: PredictionCycle = Depends(get_cycle)):
    return cycle.run(context)

@router.delete("/cache")
def invalidate_cache(pattern: str = Query(..., min_length=1, description="Substring of the keys to drop, e.g. a race name"),
                     cache: TTLCache = Depends(get_cache)):
    return {"pattern": pattern, "removed": cache.invalidate(pattern)}
