"""Short-lived in-memory cache for finished reports."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Hashable, Optional, Tuple, TypeVar

from cafe_analytics.config.supabase_client import REPORT_CACHE_MAX_ENTRIES, REPORT_CACHE_TTL_SECONDS

T = TypeVar("T")


class ReportCache:
    """Time-to-live cache keyed by report identity.

    Entries are never invalidated early; a stale entry is dropped on read.
    Past ``max_entries`` the least recently used report is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = REPORT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = REPORT_CACHE_MAX_ENTRIES,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if now - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > max(self.max_entries, 1):
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    async def get_or_build(self, key: Hashable, build: Callable[[], Awaitable[T]]) -> T:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await build()
        if self.ttl_seconds > 0:
            self.set(key, value)
        return value


report_cache = ReportCache()

__all__ = ["ReportCache", "report_cache"]
