"""TTL result cache shared by the aggregator and the orchestrator.

Backends implement the ResultCache protocol: Redis when ``redis_url`` is
configured, an in-process dict otherwise. Callers never talk to a
backend directly; SafeResultCache bounds every call by a short I/O
timeout and turns any failure into a miss, so an unreachable cache only
costs recomputation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as aioredis

from ticketforge.config import Settings
from ticketforge.constants import ERROR_TRUNCATION_CHARS

logger = logging.getLogger(__name__)


class ResultCache(Protocol):
    """Network-addressable TTL key-value store."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: str
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryResultCache:
    """Process-local TTL cache used when no Redis URL is configured.

    Entries past ``expires_at`` are dropped lazily on read. When
    ``max_entries`` is reached the entry closest to expiry is evicted.
    """

    def __init__(
        self,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._clock = clock

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self._clock()
        if key not in self._entries and len(self._entries) >= self._max_entries:
            self._evict(now)
        self._entries[key] = CacheEntry(
            key=key, value=value, expires_at=now + ttl_seconds
        )

    def _evict(self, now: float) -> None:
        live = {k: e for k, e in self._entries.items() if not e.expired(now)}
        self._entries = live
        if len(live) >= self._max_entries:
            oldest = min(live.values(), key=lambda e: e.expires_at)
            del self._entries[oldest.key]

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisResultCache:
    """Redis-backed cache with a lazily created asyncio client."""

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "ticketforge",
        client: aioredis.Redis | None = None,
    ) -> None:
        self.redis_url = redis_url
        self._prefix = key_prefix
        self._client = client

    @property
    def client(self) -> aioredis.Redis:
        """Get or create the Redis client (lazy initialization)."""
        if self._client is None:
            self._client = aioredis.from_url(
                self.redis_url, decode_responses=True
            )
        return self._client

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> str | None:
        value = await self.client.get(self._key(key))
        if value is None:
            return None
        return value if isinstance(value, str) else value.decode("utf-8")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(self._key(key), value, ex=ttl_seconds)

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("event=redis_closed")


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    writes: int = 0
    errors: int = 0


class SafeResultCache:
    """Timeout-bounded facade that treats every backend failure as a miss."""

    def __init__(self, backend: ResultCache, io_timeout_seconds: float) -> None:
        self.backend = backend
        self._timeout = io_timeout_seconds
        self.stats = CacheStats()

    async def get(self, key: str) -> str | None:
        try:
            async with asyncio.timeout(self._timeout):
                value = await self.backend.get(key)
        except Exception as exc:
            self._record_error("get", key, exc)
            self.stats.misses += 1
            return None
        if value is None:
            self.stats.misses += 1
        else:
            self.stats.hits += 1
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        try:
            async with asyncio.timeout(self._timeout):
                await self.backend.set(key, value, ttl_seconds)
        except Exception as exc:
            self._record_error("set", key, exc)
            return False
        self.stats.writes += 1
        return True

    async def ping(self) -> bool:
        try:
            async with asyncio.timeout(self._timeout):
                return await self.backend.ping()
        except Exception as exc:
            self._record_error("ping", "-", exc)
            return False

    async def close(self) -> None:
        try:
            await self.backend.close()
        except Exception as exc:
            self._record_error("close", "-", exc)

    def _record_error(self, op: str, key: str, exc: BaseException) -> None:
        self.stats.errors += 1
        logger.warning(
            "event=cache_unavailable op=%s key=%s error=%s",
            op,
            key,
            (str(exc) or type(exc).__name__)[:ERROR_TRUNCATION_CHARS],
        )


def create_result_cache(settings: Settings) -> SafeResultCache:
    """Build the configured backend wrapped in SafeResultCache."""
    backend: ResultCache
    if settings.redis_url:
        backend = RedisResultCache(
            settings.redis_url, key_prefix=settings.cache_key_prefix
        )
        logger.info("event=cache_backend backend=redis")
    else:
        backend = MemoryResultCache()
        logger.info("event=cache_backend backend=memory")
    return SafeResultCache(backend, settings.cache_io_timeout_seconds)
