"""TTL cache for the dashboard analytics responses.

Each report is a full Shopify window fetch, so results are kept per report and
window length (``analytics:churn_risk:30``) for a few minutes.

Usage:
    from maldify.utils.response_cache import response_cache

    return await response_cache.get_or_compute(
        f"analytics:roi:{days}", lambda: service.get_roi(days), ttl=300
    )
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional


@dataclass
class _Entry:
    value: Any
    expires_at: float


class ResponseCache:
    """In-memory cache with per-entry TTL and a cap on entry count."""

    def __init__(self, max_entries: int = 64, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            return
        now = self._clock()
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict(now)
            self._entries[key] = _Entry(value=value, expires_at=now + ttl)

    def _evict(self, now: float) -> None:
        for key in [k for k, e in self._entries.items() if now >= e.expires_at]:
            del self._entries[key]
        if len(self._entries) >= self._max_entries:
            soonest = min(self._entries, key=lambda k: self._entries[k].expires_at)
            del self._entries[soonest]

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[Any]], ttl: float) -> Any:
        """Cached value for key, or await compute() and cache its result"""
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await compute()
        self.set(key, value, ttl)
        return value

    def invalidate(self, prefix: str) -> int:
        """Drop every key starting with prefix; returns how many were dropped"""
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


response_cache = ResponseCache()
