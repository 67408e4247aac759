"""Time-bucketed TTL cache for fetched price histories."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

from signal_engine.clock import DEFAULT_BUCKET_MINUTES, time_bucket

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HistoryCache(Generic[T]):
    """Caches values under ``"{asset}-{interval}-{bucket}"`` keys for ``ttl_seconds``.

    Because the key embeds the 15-minute bucket, a new bucket always misses
    even if the previous entry has not reached its TTL yet.
    """

    def __init__(
        self,
        ttl_seconds: float = 900,
        *,
        bucket_minutes: int = DEFAULT_BUCKET_MINUTES,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.bucket_minutes = bucket_minutes
        self._clock = clock or time.time
        self._entries: Dict[str, Tuple[float, T]] = {}

    def key(self, asset: str, interval: str, now_ms: Optional[float] = None) -> str:
        if now_ms is None:
            now_ms = self._clock() * 1000.0
        return f"{asset}-{interval}-{time_bucket(now_ms, self.bucket_minutes)}"

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            logger.debug("Cache entry %s expired", key)
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: T) -> None:
        self._purge_expired()
        self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        stale = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl_seconds]
        for key in stale:
            del self._entries[key]


__all__ = ["HistoryCache"]
