from fastapi import APIRouter, Depends
from app.api.deps import get_cache, get_cycle
from app.schemas.cycle import CycleResult
from app.schemas.races import RaceContext
from app.services import races as race_service
from app.services.cache import TTLCache
from app.services.cycle import PredictionCycle

router = APIRouter()

@router.get("/upcoming", response_model=RaceContext)
def upcoming_race(cache: TTLCache = Depends(get_cache)):
    return race_service.get_upcoming_race_context(cache)

@router.get("/upcoming/prediction", response_model=CycleResult)
def upcoming_prediction(cache: TTLCache = Depends(get_cache),
                        cycle: PredictionCycle = Depends(get_cycle)):
    return cycle.run(race_service.get_upcoming_race_context(cache))
