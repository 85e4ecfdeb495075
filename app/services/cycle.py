"""One prediction cycle: score the field, price it against the market.

The odds fetch runs on a worker thread while the field is scored, and is
joined before the betting analysis. A missing roster aborts the cycle;
provider failures only degrade the betting half of the result.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from app.core.errors import MissingInput, RateLimited, UpstreamUnavailable
from app.schemas.cycle import CycleResult, CycleWarning
from app.schemas.races import RaceContext
from app.services.betting import BettingAnalyzer
from app.services.odds import OddsGateway
from app.services.predictions import PredictionEngine

logger = logging.getLogger(__name__)


class PredictionCycle:
    def __init__(self, engine: PredictionEngine, analyzer: BettingAnalyzer, gateway: OddsGateway):
        self.engine = engine
        self.analyzer = analyzer
        self.gateway = gateway

    def run(self, context: RaceContext, cancel: Optional[threading.Event] = None) -> CycleResult:
        if not context.drivers:
            raise MissingInput(f"Race '{context.name}' has no driver roster to score")

        warnings = []
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="odds") as pool:
            odds_future = pool.submit(self.gateway.fetch_odds, cancel)
            predictions = self.engine.generate_predictions(context)

            betting = None
            try:
                odds = odds_future.result()
            except RateLimited as e:
                logger.warning("odds provider rate limited %s: %s", context.name, e)
                warnings.append(CycleWarning(
                    component="odds", kind="rate_limited", message=str(e), retryable=True,
                ))
            except UpstreamUnavailable as e:
                logger.warning("odds unavailable for %s: %s", context.name, e)
                warnings.append(CycleWarning(
                    component="betting", kind="upstream_unavailable", message=str(e),
                ))
                betting = self.analyzer.degraded_insights(context)
            else:
                betting = self.analyzer.analyze_betting_factors(context, odds)

        return CycleResult(predictions=predictions, betting=betting, warnings=warnings)
