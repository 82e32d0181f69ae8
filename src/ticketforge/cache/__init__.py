"""Result cache backends."""

from ticketforge.cache.result_cache import (
    CacheEntry,
    MemoryResultCache,
    RedisResultCache,
    ResultCache,
    SafeResultCache,
    create_result_cache,
)

__all__ = [
    "CacheEntry",
    "MemoryResultCache",
    "RedisResultCache",
    "ResultCache",
    "SafeResultCache",
    "create_result_cache",
]
