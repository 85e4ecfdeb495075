"""In-process TTL cache shared by the prediction and betting services.

Every entry is stored under a category, and the category decides how long
the entry stays readable. Expired entries are evicted lazily on read, so a
miss and an expiry look the same to callers.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATIONS: Dict[str, float] = {
    "race_data": 60 * 60,             # 1 hour
    "practice_data": 30 * 60,         # 30 minutes
    "historical_data": 24 * 60 * 60,  # 24 hours
    "predictions": 15 * 60,           # 15 minutes
}


def cache_key(category_tag: str, race_name: str) -> str:
    return f"{category_tag}_{race_name}"


@dataclass
class CacheEntry:
    data: Any
    timestamp: float
    expiration: float


class TTLCache:
    def __init__(
        self,
        expirations: Optional[Dict[str, float]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.expirations = dict(expirations or DEFAULT_EXPIRATIONS)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp >= entry.expiration:
                del self._entries[key]
                logger.debug("cache entry %s expired", key)
                return None
            return entry.data

    def set(self, key: str, data: Any, category: str) -> None:
        try:
            expiration = self.expirations[category]
        except KeyError:
            raise ValueError(f"Unknown cache category {category!r}") from None
        with self._lock:
            self._entries[key] = CacheEntry(data=data, timestamp=self._clock(), expiration=expiration)

    def invalidate(self, pattern: str) -> int:
        """Drop every entry whose key contains ``pattern``; return how many went."""
        with self._lock:
            doomed = [k for k in self._entries if pattern in k]
            for k in doomed:
                del self._entries[k]
        if doomed:
            logger.info("invalidated %d cache entries matching %r", len(doomed), pattern)
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
