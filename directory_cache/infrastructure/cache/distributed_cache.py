"""
Distributed Cache (Redis)

Second tier of the read-through path, shared by every worker. Expiry is
server-side: each SET carries its TTL and Redis drops the key on its own.

Key layout:
    {REDIS_KEY_PREFIX}:cache:{cache_key}
    e.g. people-directory:cache:person:springfield:jane-doe:v1

The prefix scopes everything this application writes, which is what lets
``reset()`` clear the cache from a Redis instance shared with other tenants
without FLUSHDB.
"""

import math
import time
from datetime import datetime, timezone
from typing import Any

from directory_cache.core.config.constants import REDIS_NAMESPACE_CACHE, Stage
from directory_cache.core.exceptions import CacheSerializationError
from directory_cache.core.interfaces.cache import MISS, Miss
from directory_cache.core.logging.logger import get_logger, log_stage
from directory_cache.infrastructure.cache import serialization
from directory_cache.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


class DistributedCache:
    """
    Redis-backed cache tier.

    Redis failures leave this class as CacheKeyError; the orchestrator turns
    them into misses. A payload that is not valid JSON is logged and reported
    as a miss here.

    Args:
        client: Connected RedisClient
        key_prefix: Application namespace (REDIS_KEY_PREFIX)
        default_ttl: TTL in seconds used when ``set`` gets no ttl
        reset_batch_size: Keys deleted per DEL during ``reset()``
    """

    def __init__(
        self,
        client: RedisClient,
        key_prefix: str,
        default_ttl: int,
        reset_batch_size: int = 1000,
    ):
        self._client = client
        self._namespace = f"{key_prefix}:{REDIS_NAMESPACE_CACHE}"
        self._default_ttl = default_ttl
        self._reset_batch_size = reset_batch_size

    @property
    def client(self) -> RedisClient:
        return self._client

    def storage_key(self, key: str) -> str:
        """Full Redis key for a cache key."""
        return f"{self._namespace}:{key}"

    async def get(self, key: str) -> Any | Miss:
        entry = await self.get_entry(key)
        if entry is None:
            return MISS
        return entry["value"]

    async def get_entry(self, key: str) -> dict[str, Any] | None:
        """
        Fetch a value together with its size and remaining server TTL.

        Redis only knows how long a key has left, so ``expires_at`` is
        derived from the remaining TTL and is None for a key without expiry.

        Returns:
            {value, size, remaining_ttl, expires_at} or None on a miss or
            unreadable payload
        """
        raw, ttl = await self._client.get_with_ttl(self.storage_key(key))
        if raw is None:
            return None

        try:
            value = serialization.loads(raw)
        except CacheSerializationError as e:
            logger.warning(
                "Unreadable distributed cache payload",
                stage=Stage.DISTRIBUTED_LOOKUP.value,
                cache_key=key,
                error=str(e),
            )
            return None

        expires_at = None
        if ttl >= 0:
            expires_at = datetime.fromtimestamp(time.time() + ttl, tz=timezone.utc).isoformat()

        return {"value": value, "size": len(raw), "remaining_ttl": ttl, "expires_at": expires_at}

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Write a value with server-side expiry.

        Raises:
            CacheSerializationError: If the value cannot be encoded
            CacheKeyError: If Redis rejects the write
        """
        text = serialization.dumps(value)
        expire_seconds = max(1, math.ceil(ttl or self._default_ttl))
        await self._client.set(self.storage_key(key), text, ttl=expire_seconds)

    async def delete(self, key: str) -> None:
        await self._client.delete(self.storage_key(key))

    async def reset(self) -> int:
        """
        Delete every key under this application's cache namespace.

        STAGE-R: Scoped reset

        SCAN MATCH walks the keyspace incrementally and keys are deleted in
        bounded batches. Keys outside the namespace are never touched.

        Returns:
            int: Number of keys deleted
        """
        pattern = f"{self._namespace}:*"
        deleted = 0
        batch: list[str] = []

        async for redis_key in self._client.scan_iter(match=pattern, count=self._reset_batch_size):
            batch.append(redis_key)
            if len(batch) >= self._reset_batch_size:
                deleted += await self._client.delete(*batch)
                batch.clear()

        if batch:
            deleted += await self._client.delete(*batch)

        log_stage(logger, Stage.RESET, "Distributed cache reset", pattern=pattern, deleted=deleted)
        return deleted
