"""
Cache Infrastructure

Two-tier page cache: in-process memory tier, Redis tier, versioned keys,
statistics, and the CacheManager that orchestrates them.
"""

from directory_cache.infrastructure.cache.cache_manager import CacheManager, CacheResult
from directory_cache.infrastructure.cache.distributed_cache import DistributedCache
from directory_cache.infrastructure.cache.keys import CacheKeyBuilder
from directory_cache.infrastructure.cache.memory_cache import (
    CacheEntry,
    DisabledMemoryCache,
    MemoryCache,
    MemoryStats,
)
from directory_cache.infrastructure.cache.redis_client import RedisClient
from directory_cache.infrastructure.cache.stats import StatsRecorder

__all__ = [
    "CacheEntry",
    "CacheKeyBuilder",
    "CacheManager",
    "CacheResult",
    "DisabledMemoryCache",
    "DistributedCache",
    "MemoryCache",
    "MemoryStats",
    "RedisClient",
    "StatsRecorder",
]
