"""
Time-boxed cache for reference data.

In-memory get-or-fetch cache with a TTL per entry. Used for slow-moving
lists (case types, employees, partners, evaluation configs) where serving a
value up to a few minutes old is acceptable.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass
class CacheEntry:
    """Cached value with its expiry deadline"""
    value: Any
    expires_at: float


class TimeBoxedCache:
    """
    Get-or-fetch cache with per-call TTL.

    Features:
    - Entries expire ``ttl`` seconds after they were fetched
    - ``force_refresh`` bypasses a fresh entry
    - Concurrent misses on the same key share one fetch
    - Failed fetches are not cached
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._stats = {"hits": 0, "misses": 0}

    def _lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def peek(self, key: Hashable) -> Optional[Any]:
        """Return the cached value if it is still fresh, without fetching."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    async def get_or_fetch(
        self,
        key: Hashable,
        ttl: float,
        fetcher: Fetcher,
        force_refresh: bool = False,
    ) -> Any:
        """
        Return the cached value for ``key`` or fetch and store a new one.

        Args:
            key: Cache key
            ttl: Lifetime of a freshly fetched value, in seconds
            fetcher: Coroutine function producing the value
            force_refresh: Ignore any cached value

        Returns:
            The cached or freshly fetched value
        """
        if not force_refresh:
            cached = self.peek(key)
            if cached is not None:
                self._stats["hits"] += 1
                return cached

        async with self._lock_for(key):
            # Another waiter may have filled the entry meanwhile
            if not force_refresh:
                cached = self.peek(key)
                if cached is not None:
                    self._stats["hits"] += 1
                    return cached

            self._stats["misses"] += 1
            value = await fetcher()
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
            logger.debug(f"Cached {key!r} for {ttl}s")
            return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def get_stats(self) -> Dict[str, int]:
        return {**self._stats, "size": len(self._entries)}
