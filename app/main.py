import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import health, races, predictions
from app.core.config import settings
from app.core.errors import MissingInput, RateLimited, UpstreamUnavailable, WaitCancelled

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="F1 Prediction & Betting API", version="0.1.0")

# Routers
app.include_router(health.router, tags=["system"])
app.include_router(races.router, prefix="/races", tags=["races"])
app.include_router(predictions.router, tags=["predictions"])

def _error(status: int, exc: Exception, retryable: bool = False):
    return JSONResponse(status_code=status, content={"detail": str(exc), "retryable": retryable})

@app.exception_handler(MissingInput)
async def missing_input(request: Request, exc: MissingInput):
    return _error(422, exc)

@app.exception_handler(RateLimited)
async def rate_limited(request: Request, exc: RateLimited):
    return _error(429, exc, retryable=True)

@app.exception_handler(UpstreamUnavailable)
async def upstream_unavailable(request: Request, exc: UpstreamUnavailable):
    return _error(502, exc)

@app.exception_handler(WaitCancelled)
async def wait_cancelled(request: Request, exc: WaitCancelled):
    return _error(503, exc, retryable=True)

@app.get("/", include_in_schema=False)
def root():
    return {"message": "F1 Prediction & Betting API - see /docs"}
