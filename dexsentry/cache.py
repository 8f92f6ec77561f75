"""
In-memory TTL cache for external lookups

Keeps risk reports and prices for a short time so concurrent sweeps over the
same token do not hammer third-party APIs.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class CacheEntry:
    """Single cache entry with TTL"""

    def __init__(self, value: Any, ttl_seconds: float):
        self.value = value
        self.expires_at = time.monotonic() + ttl_seconds

    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class TTLCache:
    """
    Async-safe TTL cache with single-flight fetches.

    Concurrent callers asking for the same missing key share one fetch
    instead of each hitting the upstream service.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._in_flight: Dict[str, asyncio.Future] = {}

    async def get(self, key: str) -> Optional[Any]:
        """Get value if present and not expired"""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[key]
                return None
            return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: float):
        async with self._lock:
            self._entries[key] = CacheEntry(value, ttl_seconds)

    async def get_or_fetch(
        self, key: str, fetch_fn: Callable[[], Awaitable[Any]], ttl_seconds: float
    ) -> Any:
        """
        Return the cached value or fetch it once for all concurrent callers.

        Failed fetches are not cached; every waiter sees the same exception.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        if key in self._in_flight:
            return await asyncio.shield(self._in_flight[key])

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        self._in_flight[key] = future

        try:
            result = await fetch_fn()
            await self.set(key, result, ttl_seconds)
            future.set_result(result)
            return result
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so a fetch with no waiters does not warn on GC
            future.exception()
            raise
        finally:
            self._in_flight.pop(key, None)


# Global cache instance
api_cache = TTLCache()
