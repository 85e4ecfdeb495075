# app/api/deps.py
from functools import lru_cache

from fastapi import Depends

from app.core.config import settings
from app.services.betting import BettingAnalyzer
from app.services.cache import TTLCache
from app.services.cycle import PredictionCycle
from app.services.estimators import Estimators, build_estimators
from app.services.odds import OddsGateway
from app.services.predictions import PredictionEngine

# Process-wide shared state: one cache, one rate-limited gateway
@lru_cache
def get_cache() -> TTLCache:
    return TTLCache(settings.cache_expirations())

@lru_cache
def get_estimators() -> Estimators:
    return build_estimators(settings.estimators, settings.estimator_seed)

@lru_cache
def get_gateway() -> OddsGateway:
    return OddsGateway.from_settings(settings)

def get_engine(cache: TTLCache = Depends(get_cache),
               estimators: Estimators = Depends(get_estimators)) -> PredictionEngine:
    return PredictionEngine(cache=cache, estimators=estimators)

def get_analyzer(engine: PredictionEngine = Depends(get_engine)) -> BettingAnalyzer:
    return BettingAnalyzer(engine)

def get_cycle(engine: PredictionEngine = Depends(get_engine),
              analyzer: BettingAnalyzer = Depends(get_analyzer),
              gateway: OddsGateway = Depends(get_gateway)) -> PredictionCycle:
    return PredictionCycle(engine, analyzer, gateway)
