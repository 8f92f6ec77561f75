"""
Tests for dexsentry/cache.py

Covers:
- CacheEntry (TTL expiry logic)
- TTLCache (get, set, get_or_fetch)
"""

import asyncio
import time
import pytest
from unittest.mock import AsyncMock

from dexsentry.cache import CacheEntry, TTLCache


class TestCacheEntry:
    def test_not_expired_within_ttl(self):
        entry = CacheEntry("value", ttl_seconds=60)
        assert entry.is_expired() is False

    def test_expired_after_ttl(self):
        entry = CacheEntry("value", ttl_seconds=60)
        entry.expires_at = time.monotonic() - 1
        assert entry.is_expired() is True


class TestTTLCache:
    @pytest.mark.asyncio
    async def test_set_then_get(self):
        cache = TTLCache()
        await cache.set("k", {"a": 1}, ttl_seconds=60)
        assert await cache.get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_expired_entry_returns_none(self):
        cache = TTLCache()
        await cache.set("k", "v", ttl_seconds=0)
        assert await cache.get("k") is None

    @pytest.mark.asyncio
    async def test_get_or_fetch_uses_cached_value(self):
        cache = TTLCache()
        await cache.set("k", "cached", ttl_seconds=60)
        fetch = AsyncMock(return_value="fresh")

        assert await cache.get_or_fetch("k", fetch, ttl_seconds=60) == "cached"
        fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_fetch(self):
        """Single-flight: one upstream call for simultaneous misses"""
        cache = TTLCache()
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "report"

        results = await asyncio.gather(*(cache.get_or_fetch("k", fetch, ttl_seconds=60) for _ in range(5)))

        assert results == ["report"] * 5
        assert calls == 1

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_cached(self):
        cache = TTLCache()
        fetch = AsyncMock(side_effect=[RuntimeError("down"), "ok"])

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", fetch, ttl_seconds=60)

        assert await cache.get_or_fetch("k", fetch, ttl_seconds=60) == "ok"
