"""Tests for the memory backend, the Redis backend and SafeResultCache."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from ticketforge.cache.result_cache import (
    MemoryResultCache,
    RedisResultCache,
    SafeResultCache,
    create_result_cache,
)
from ticketforge.config import Settings

from tests.conftest import FakeClock


class _BrokenBackend:
    """Backend whose every call fails."""

    async def get(self, key: str) -> str | None:
        raise ConnectionError("connection refused")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise ConnectionError("connection refused")

    async def ping(self) -> bool:
        raise ConnectionError("connection refused")

    async def close(self) -> None:
        raise ConnectionError("connection refused")


class _SlowBackend(MemoryResultCache):
    async def get(self, key: str) -> str | None:
        await asyncio.sleep(5)
        return await super().get(key)


class TestMemoryResultCache:
    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, clock: FakeClock) -> None:
        cache = MemoryResultCache(clock=clock)
        await cache.set("k", "v", ttl_seconds=10)
        assert await cache.get("k") == "v"

        clock.advance(9.9)
        assert await cache.get("k") == "v"
        clock.advance(0.1)
        assert await cache.get("k") is None
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_eviction_prefers_soonest_expiry(
        self, clock: FakeClock
    ) -> None:
        cache = MemoryResultCache(max_entries=2, clock=clock)
        await cache.set("short", "1", ttl_seconds=5)
        await cache.set("long", "2", ttl_seconds=500)
        await cache.set("new", "3", ttl_seconds=50)

        assert await cache.get("short") is None
        assert await cache.get("long") == "2"
        assert await cache.get("new") == "3"

    @pytest.mark.asyncio
    async def test_eviction_drops_expired_first(self, clock: FakeClock) -> None:
        cache = MemoryResultCache(max_entries=2, clock=clock)
        await cache.set("a", "1", ttl_seconds=1)
        await cache.set("b", "2", ttl_seconds=100)
        clock.advance(2)
        await cache.set("c", "3", ttl_seconds=10)
        assert await cache.get("b") == "2"
        assert await cache.get("c") == "3"

    @pytest.mark.asyncio
    async def test_overwrite_refreshes_ttl(self, clock: FakeClock) -> None:
        cache = MemoryResultCache(clock=clock)
        await cache.set("k", "old", ttl_seconds=5)
        clock.advance(4)
        await cache.set("k", "new", ttl_seconds=5)
        clock.advance(4)
        assert await cache.get("k") == "new"


class TestRedisResultCache:
    @pytest.mark.asyncio
    async def test_keys_are_prefixed_and_ttl_passed(self) -> None:
        client = AsyncMock()
        client.get.return_value = b"payload"
        cache = RedisResultCache(
            "redis://localhost:6379/0", key_prefix="tf", client=client
        )

        await cache.set("context:abc", "payload", ttl_seconds=300)
        client.set.assert_awaited_once_with(
            "tf:context:abc", "payload", ex=300
        )
        assert await cache.get("context:abc") == "payload"
        client.get.assert_awaited_once_with("tf:context:abc")

    @pytest.mark.asyncio
    async def test_close_releases_client(self) -> None:
        client = AsyncMock()
        cache = RedisResultCache("redis://localhost:6379/0", client=client)
        await cache.close()
        client.aclose.assert_awaited_once()


class TestSafeResultCache:
    @pytest.mark.asyncio
    async def test_backend_errors_become_misses(self) -> None:
        cache = SafeResultCache(_BrokenBackend(), io_timeout_seconds=0.5)

        assert await cache.get("k") is None
        assert await cache.set("k", "v", 60) is False
        assert await cache.ping() is False
        await cache.close()
        assert cache.stats.errors == 4
        assert cache.stats.misses == 1

    @pytest.mark.asyncio
    async def test_slow_backend_times_out_as_miss(self) -> None:
        cache = SafeResultCache(_SlowBackend(), io_timeout_seconds=0.01)
        assert await cache.get("k") is None
        assert cache.stats.errors == 1

    @pytest.mark.asyncio
    async def test_hit_and_miss_counters(self) -> None:
        cache = SafeResultCache(MemoryResultCache(), io_timeout_seconds=0.5)
        assert await cache.set("k", "v", 60) is True
        assert await cache.get("k") == "v"
        assert await cache.get("other") is None
        assert (cache.stats.hits, cache.stats.misses, cache.stats.writes) == (
            1,
            1,
            1,
        )


class TestFactory:
    def test_memory_without_url(self) -> None:
        cache = create_result_cache(Settings(redis_url=""))
        assert isinstance(cache.backend, MemoryResultCache)

    def test_redis_with_url(self) -> None:
        cache = create_result_cache(
            Settings(redis_url="redis://localhost:6379/0")
        )
        assert isinstance(cache.backend, RedisResultCache)
