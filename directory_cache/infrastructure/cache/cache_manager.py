"""
Tiered Cache Manager

Read-through orchestration over the memory and distributed tiers.

Architecture:
    CacheManager (Public API)
        ├── MemoryCache / DisabledMemoryCache (in-process tier)
        ├── DistributedCache (Redis tier, absent when disabled or unreachable)
        ├── CacheKeyBuilder (versioned keys)
        └── StatsRecorder (hit/miss instrumentation)

Read path for one key:

    START → CHECK_MEMORY ─hit→ RETURN(memory)
              │miss
              ▼
         CHECK_DISTRIBUTED ─hit→ BACKFILL_MEMORY → RETURN(redis)
              │miss
              ▼
         FETCH_SOURCE → POPULATE_BOTH_TIERS → RETURN(database)

Degradation rules:
- Every tier call is bounded by CACHE_TIER_TIMEOUT
- A tier failure or timeout is logged and treated as a miss (reads) or a
  skipped write (population, invalidation)
- A cached payload that no longer validates against the snapshot model is a miss
- Exceptions from the source fetch propagate unchanged
- ``None`` from the source is cached like any other value
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import redis.asyncio as redis
from pydantic import BaseModel, ValidationError

from directory_cache.core.config.constants import CacheEntity, CacheSource, CacheTier, Stage
from directory_cache.core.config.settings import Settings, get_settings
from directory_cache.core.exceptions import CacheConnectionError
from directory_cache.core.interfaces.cache import MISS, Miss
from directory_cache.core.logging.logger import get_logger, log_stage
from directory_cache.infrastructure.cache.distributed_cache import DistributedCache
from directory_cache.infrastructure.cache.keys import CacheKeyBuilder
from directory_cache.infrastructure.cache.memory_cache import DisabledMemoryCache, MemoryCache
from directory_cache.infrastructure.cache.redis_client import RedisClient
from directory_cache.infrastructure.cache.stats import StatsRecorder

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class CacheResult(Generic[T]):
    """
    Outcome of one cached read.

    Attributes:
        data: The snapshot, or None when the entity does not exist
        source: Tier that served the data
        latency_ms: Wall time of the whole read-through call

    ``source`` and ``latency_ms`` are for observability; callers never need
    them to decide what to render.
    """

    data: T | None
    source: CacheSource
    latency_ms: float


class CacheManager:
    """
    Owns both cache tiers and runs the read-through path.

    Usage:
        manager = CacheManager()
        await manager.initialize()

        result = await manager.read_through(
            manager.keys.town("springfield"),
            lambda: loader.load("springfield"),
            model=TownPageData,
            entity=CacheEntity.TOWN,
        )

        await manager.invalidate(manager.keys.town("springfield"))
        await manager.shutdown()

    Only this class writes to the tiers.

    Args:
        settings: Application settings (global settings when omitted)
        redis_client: Pre-built redis.asyncio client for the distributed tier
        clock: Time source for the memory tier (epoch seconds)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        redis_client: redis.Redis | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache manager.

        STAGE-LC.1: Cache manager construction
        """
        self._settings = settings or get_settings()
        cache_settings = self._settings.cache

        self._keys = CacheKeyBuilder(version=cache_settings.CACHE_SCHEMA_VERSION)
        self._stats = StatsRecorder()
        self._tier_timeout = cache_settings.CACHE_TIER_TIMEOUT
        self._request_tracking = cache_settings.CACHE_REQUEST_TRACKING
        self._redis_client_override = redis_client

        self._memory_enabled = cache_settings.CACHE_MEMORY_ENABLE
        if self._memory_enabled:
            self._memory: MemoryCache | DisabledMemoryCache = MemoryCache(
                default_ttl=cache_settings.CACHE_MEMORY_TTL,
                max_size_bytes=cache_settings.memory_max_size_bytes,
                cleanup_interval=(
                    cache_settings.memory_cleanup_interval
                    if cache_settings.CACHE_MEMORY_CLEANUP_ENABLED
                    else None
                ),
                clock=clock,
            )
        else:
            self._memory = DisabledMemoryCache()

        self._distributed: DistributedCache | None = None
        self._initialized = False

        log_stage(
            logger,
            Stage.LIFECYCLE,
            "Cache manager created",
            memory_enabled=self._memory_enabled,
            redis_enabled=cache_settings.CACHE_REDIS_ENABLE,
            schema_version=cache_settings.CACHE_SCHEMA_VERSION,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Connect the distributed tier and start memory cleanup.

        STAGE-LC.2: Cache manager initialization

        An unreachable Redis does not fail startup: after the connection
        retries are exhausted the distributed tier is simply absent.
        """
        if self._initialized:
            return

        self._memory.start_cleanup()

        if self._settings.cache.CACHE_REDIS_ENABLE:
            client = RedisClient(self._settings, client=self._redis_client_override)
            try:
                await client.connect()
            except CacheConnectionError as e:
                logger.error(
                    "Distributed cache unavailable, continuing without it",
                    stage=Stage.LIFECYCLE.value,
                    error=e.message,
                    **e.details,
                )
            else:
                self._distributed = DistributedCache(
                    client,
                    key_prefix=self._settings.redis.REDIS_KEY_PREFIX,
                    default_ttl=self._settings.cache.CACHE_REDIS_TTL,
                    reset_batch_size=self._settings.cache.CACHE_RESET_BATCH_SIZE,
                )

        self._initialized = True
        log_stage(
            logger,
            Stage.LIFECYCLE,
            "Cache manager initialized",
            memory_enabled=self._memory_enabled,
            distributed_available=self._distributed is not None,
        )

    async def shutdown(self) -> None:
        """
        Stop cleanup, clear the memory tier and close Redis.

        STAGE-LC.3: Cache manager shutdown
        """
        await self._memory.close()
        await self._memory.reset()

        if self._distributed is not None:
            await self._distributed.client.disconnect()
            self._distributed = None

        self._initialized = False
        log_stage(logger, Stage.LIFECYCLE, "Cache manager shutdown")

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def keys(self) -> CacheKeyBuilder:
        return self._keys

    @property
    def memory(self) -> MemoryCache | DisabledMemoryCache:
        return self._memory

    @property
    def distributed(self) -> DistributedCache | None:
        return self._distributed

    @property
    def stats(self) -> StatsRecorder:
        return self._stats

    # -------------------------------------------------------------------------
    # Read-through
    # -------------------------------------------------------------------------

    async def read_through(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T | None]],
        *,
        model: type[T],
        entity: CacheEntity,
        force_refresh: bool = False,
        ttl: float | None = None,
    ) -> CacheResult[T]:
        """
        Serve ``key`` from the fastest tier that has it, else from ``fetch``.

        Args:
            key: Cache key (from CacheKeyBuilder)
            fetch: Coroutine factory that loads the snapshot from the source
            model: Snapshot model used to rebuild cached payloads
            entity: Entity being read (logging and metrics)
            force_refresh: Skip both lookups and write through both tiers
            ttl: TTL override in seconds applied to both tiers

        Returns:
            CacheResult with the snapshot (or None), its source and latency

        Raises:
            Whatever ``fetch`` raises, unchanged
        """
        start = time.perf_counter()

        if force_refresh:
            self._track(Stage.SOURCE_FETCH, "Force refresh, skipping cache lookups", key, entity)
        else:
            cached = await self._check_memory(key, model, entity)
            if cached is not MISS:
                return self._finish(cached, CacheSource.MEMORY, start, key, entity)

            cached = await self._check_distributed(key, model, entity)
            if cached is not MISS:
                await self._guarded(
                    Stage.MEMORY_BACKFILL,
                    "memory.set",
                    key,
                    self._memory.set(key, _to_payload(cached), ttl),
                    default=None,
                )
                return self._finish(cached, CacheSource.REDIS, start, key, entity)

        # STAGE-3.0: Source fetch (errors propagate)
        self._track(Stage.SOURCE_FETCH, "Fetching from source", key, entity)
        data = await fetch()
        self._stats.record_database_query(key, entity=_entity_name(entity))

        # STAGE-4.0: Populate both tiers before returning
        payload = _to_payload(data)
        await self._guarded(
            Stage.TIER_POPULATION, "memory.set", key, self._memory.set(key, payload, ttl), default=None
        )
        if self._distributed is not None:
            await self._guarded(
                Stage.TIER_POPULATION,
                "redis.set",
                key,
                self._distributed.set(key, payload, ttl),
                default=None,
            )

        return self._finish(data, CacheSource.DATABASE, start, key, entity)

    async def _check_memory(self, key: str, model: type[T], entity: CacheEntity) -> T | None | Miss:
        """STAGE-1.0: Memory lookup."""
        value = await self._guarded(Stage.MEMORY_LOOKUP, "memory.get", key, self._memory.get(key))
        if value is not MISS:
            value = self._rebuild(value, model, key, CacheTier.MEMORY)

        if not self._memory_enabled:
            return value

        if value is MISS:
            self._stats.record_miss(CacheTier.MEMORY, key)
            self._track(Stage.MEMORY_LOOKUP, "Memory miss", key, entity)
        else:
            self._stats.record_hit(CacheTier.MEMORY, key, self._memory.get_entry_info(key))
            self._track(Stage.MEMORY_LOOKUP, "Memory hit", key, entity)
        return value

    async def _check_distributed(self, key: str, model: type[T], entity: CacheEntity) -> T | None | Miss:
        """STAGE-2.0: Distributed lookup."""
        if self._distributed is None:
            return MISS

        entry = await self._guarded(
            Stage.DISTRIBUTED_LOOKUP, "redis.get", key, self._distributed.get_entry(key), default=None
        )
        value = MISS if entry is None else self._rebuild(entry["value"], model, key, CacheTier.REDIS)

        if value is MISS:
            self._stats.record_miss(CacheTier.REDIS, key)
            self._track(Stage.DISTRIBUTED_LOOKUP, "Distributed miss", key, entity)
        else:
            self._stats.record_hit(
                CacheTier.REDIS,
                key,
                {
                    "size": entry["size"],
                    "remaining_ttl": entry["remaining_ttl"],
                    "expires_at": entry["expires_at"],
                },
            )
            self._track(Stage.DISTRIBUTED_LOOKUP, "Distributed hit", key, entity)
        return value

    def _rebuild(self, payload: Any, model: type[T], key: str, tier: CacheTier) -> T | None | Miss:
        if payload is None:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            logger.warning(
                "Cached payload failed validation, treating as miss",
                stage=Stage.MEMORY_LOOKUP.value if tier is CacheTier.MEMORY else Stage.DISTRIBUTED_LOOKUP.value,
                tier=tier.value,
                cache_key=key,
                errors=e.error_count(),
            )
            return MISS

    def _finish(
        self, data: T | None, source: CacheSource, start: float, key: str, entity: CacheEntity
    ) -> CacheResult[T]:
        latency_ms = (time.perf_counter() - start) * 1000
        self._stats.record_lookup(source, latency_ms)
        log_stage(
            logger,
            Stage.RESULT,
            "Cache read complete",
            level="debug",
            cache_key=key,
            entity=_entity_name(entity),
            source=source.value,
            found=data is not None,
            latency_ms=round(latency_ms, 3),
        )
        return CacheResult(data=data, source=source, latency_ms=latency_ms)

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    async def invalidate(self, key: str) -> None:
        """
        Delete a key from both tiers.

        STAGE-I: Invalidation

        Failures on either tier are logged and swallowed; the entry then
        lives until its TTL runs out.
        """
        await self._guarded(Stage.INVALIDATION, "memory.delete", key, self._memory.delete(key), default=None)
        if self._distributed is not None:
            await self._guarded(
                Stage.INVALIDATION, "redis.delete", key, self._distributed.delete(key), default=None
            )
        log_stage(logger, Stage.INVALIDATION, "Cache key invalidated", cache_key=key)

    async def invalidate_many(self, keys: list[str]) -> None:
        for key in keys:
            await self.invalidate(key)

    async def reset(self) -> dict[str, int]:
        """
        Clear both tiers (the distributed tier only within this app's namespace).

        Returns:
            Dict with the number of entries removed per tier
        """
        removed = {CacheTier.MEMORY.value: await self._memory.reset(), CacheTier.REDIS.value: 0}
        if self._distributed is not None:
            removed[CacheTier.REDIS.value] = await self._distributed.reset()
        return removed

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        """Counters plus current memory usage and tier availability."""
        stats = self._stats.get_stats()
        stats["memory_usage"] = self._memory.get_memory_stats().to_dict()
        stats["tiers"] = {
            CacheTier.MEMORY.value: self._memory_enabled,
            CacheTier.REDIS.value: self._distributed is not None,
        }
        return stats

    async def health_check(self) -> dict[str, Any]:
        """
        Report tier availability.

        The service stays healthy without Redis; it only gets slower.
        """
        health: dict[str, Any] = {
            "status": "healthy",
            "memory": {"enabled": self._memory_enabled, **self._memory.get_memory_stats().to_dict()},
            "redis": {"enabled": self._settings.cache.CACHE_REDIS_ENABLE, "available": False},
        }
        if self._distributed is not None:
            redis_health = await self._distributed.client.health_check()
            health["redis"].update(redis_health)
            health["redis"]["available"] = redis_health["status"] == "healthy"
            if not health["redis"]["available"]:
                health["status"] = "degraded"
        elif self._settings.cache.CACHE_REDIS_ENABLE:
            health["status"] = "degraded"
        return health

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _guarded(
        self,
        stage: Stage,
        operation: str,
        key: str,
        call: Awaitable[Any],
        default: Any = MISS,
    ) -> Any:
        """Run one tier call under the tier timeout; failures become ``default``."""
        try:
            return await asyncio.wait_for(call, timeout=self._tier_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Cache tier call timed out",
                stage=stage.value,
                operation=operation,
                cache_key=key,
                timeout_seconds=self._tier_timeout,
            )
        except Exception as e:
            logger.warning(
                "Cache tier call failed",
                stage=stage.value,
                operation=operation,
                cache_key=key,
                error_type=type(e).__name__,
                error=str(e),
            )
        return default

    def _track(self, stage: Stage, message: str, key: str, entity: CacheEntity) -> None:
        if self._request_tracking:
            log_stage(logger, stage, message, cache_key=key, entity=_entity_name(entity))


def _to_payload(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    return data


def _entity_name(entity: CacheEntity | str) -> str:
    return entity.value if isinstance(entity, CacheEntity) else entity
