# app/services/odds.py
"""Rate-limited gateway to The Odds API.

The provider allows a small number of requests per minute, so every upstream
call is admitted through a :class:`RateWindow` first. Responses are kept for a
few minutes so per-driver lookups share one upstream call.
"""
from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from typing import Callable, Deque, List, Optional

import requests

from app.core.config import settings
from app.core.errors import RateLimited, UpstreamUnavailable, WaitCancelled
from app.schemas.betting import MarketOdds, OddsQuote
from app.services.cache import TTLCache

logger = logging.getLogger(__name__)

ODDS_CACHE_KEY = "f1_odds"
WINNER_MARKETS = ("winner", "outrights")
FETCH_LOCK_POLL = 0.1  # seconds between cancellation checks while queued


def _sleep(seconds: float, cancel: Optional[threading.Event]) -> bool:
    """Block for ``seconds``; return True if ``cancel`` fired first."""
    if cancel is None:
        time.sleep(seconds)
        return False
    return cancel.wait(seconds)


class RateWindow:
    """Timestamps of admitted requests within the trailing ``period`` seconds."""

    def __init__(
        self,
        max_requests: int = 10,
        period: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        wait: Callable[[float, Optional[threading.Event]], bool] = _sleep,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.period = period
        self._clock = clock
        self._wait = wait
        self._timestamps: Deque[float] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        while self._timestamps and self._timestamps[0] <= now - self.period:
            self._timestamps.popleft()

    def acquire(self, cancel: Optional[threading.Event] = None) -> float:
        """Admit one request, waiting for a free slot if the window is full.

        Returns the total time spent waiting. The slot is only recorded once
        the wait is over, so a cancelled caller leaves the window as it was.
        """
        waited = 0.0
        while True:
            with self._lock:
                now = self._clock()
                self._prune(now)
                if len(self._timestamps) < self.max_requests:
                    self._timestamps.append(now)
                    return waited
                delay = self.period - (now - self._timestamps[0])

            logger.info("odds rate limit reached, waiting %.1fs for a slot", delay)
            if self._wait(delay, cancel):
                raise WaitCancelled("cancelled while waiting for an odds request slot")
            waited += delay

    def snapshot(self) -> List[float]:
        with self._lock:
            return list(self._timestamps)

    def __len__(self) -> int:
        with self._lock:
            return len(self._timestamps)


def _dicts(items) -> List[dict]:
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def parse_odds(payload) -> MarketOdds:
    """Flatten an odds response into ``{driver: [OddsQuote, ...]}``.

    Only outright winner markets are read; head-to-head markets are ignored.
    Entries of the wrong shape are skipped at every level.
    """
    if isinstance(payload, dict):
        payload = [payload]
    if not isinstance(payload, list):
        raise UpstreamUnavailable(f"Odds provider returned unexpected {type(payload).__name__} payload")
    odds: MarketOdds = {}
    for event in _dicts(payload):
        for bookmaker in _dicts(event.get("bookmakers")):
            title = str(bookmaker.get("title") or bookmaker.get("key") or "unknown")
            for market in _dicts(bookmaker.get("markets")):
                if market.get("key") not in WINNER_MARKETS:
                    continue
                for outcome in _dicts(market.get("outcomes")):
                    name = outcome.get("name")
                    try:
                        price = float(outcome.get("price"))
                    except (TypeError, ValueError, OverflowError):
                        continue
                    if not isinstance(name, str) or not name:
                        continue
                    if not math.isfinite(price) or price <= 0:
                        continue
                    odds.setdefault(name, []).append(OddsQuote(bookmaker=title, price=price))
    return odds


class OddsGateway:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.the-odds-api.com/v4/sports",
        sport: str = "motorsport_f1",
        regions: str = "eu",
        markets: str = "h2h,winner",
        timeout: float = 20,
        cache_ttl: float = 5 * 60,
        rate_window: Optional[RateWindow] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.sport = sport
        self.regions = regions
        self.markets = markets
        self.timeout = timeout
        self.rate_window = rate_window or RateWindow(clock=clock)
        self._cache = TTLCache({"odds": cache_ttl}, clock=clock)
        self._fetch_lock = threading.Lock()

    @classmethod
    def from_settings(cls, s=settings) -> "OddsGateway":
        return cls(
            api_key=s.odds_api_key,
            base_url=s.odds_base_url,
            sport=s.odds_sport,
            regions=s.odds_regions,
            markets=s.odds_markets,
            timeout=s.odds_timeout,
            cache_ttl=s.odds_cache_ttl,
            rate_window=RateWindow(max_requests=s.odds_requests_per_minute),
        )

    def _odds_url(self) -> str:
        return f"{self.base_url}/{self.sport}/odds/"

    def _cached_odds(self) -> Optional[MarketOdds]:
        cached = self._cache.get(ODDS_CACHE_KEY)
        if cached is None:
            return None
        return {name: list(quotes) for name, quotes in cached.items()}

    def _take_fetch_lock(self, cancel: Optional[threading.Event]) -> None:
        while not self._fetch_lock.acquire(timeout=FETCH_LOCK_POLL):
            if cancel is not None and cancel.is_set():
                raise WaitCancelled("cancelled while waiting for an odds fetch in flight")

    def fetch_odds(self, cancel: Optional[threading.Event] = None) -> MarketOdds:
        """All winner-market quotes, from the private cache when still fresh.

        Callers that miss the cache at the same time are serialised so that
        only the first one spends a rate-window slot on the upstream call.
        """
        cached = self._cached_odds()
        if cached is not None:
            return cached

        if not self.api_key:
            raise UpstreamUnavailable("ODDS_API_KEY is not configured")

        self._take_fetch_lock(cancel)
        try:
            cached = self._cached_odds()
            if cached is not None:
                return cached
            odds = self._fetch_upstream(cancel)
        finally:
            self._fetch_lock.release()
        return {name: list(quotes) for name, quotes in odds.items()}

    def _fetch_upstream(self, cancel: Optional[threading.Event]) -> MarketOdds:
        self.rate_window.acquire(cancel)
        params = {"apiKey": self.api_key, "regions": self.regions, "markets": self.markets}
        try:
            resp = requests.get(self._odds_url(), params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"Failed to fetch odds: {e}") from e

        if resp.status_code == 429:
            raise RateLimited("Rate limit exceeded")
        if not resp.ok:
            raise UpstreamUnavailable(f"Failed to fetch odds: HTTP {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError as e:
            raise UpstreamUnavailable("Odds provider returned invalid JSON") from e

        odds = parse_odds(payload)
        logger.info("fetched odds for %d drivers", len(odds))
        self._cache.set(ODDS_CACHE_KEY, odds, "odds")
        return odds

    def fetch_driver_odds(self, driver_name: str, cancel: Optional[threading.Event] = None) -> List[OddsQuote]:
        return self.fetch_odds(cancel).get(driver_name, [])
