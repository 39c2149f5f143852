"""
Redis Client with Connection Pooling

Architecture:
    RedisClient (Public API)
        ├── ConnectionManager (Connection lifecycle)
        ├── OperationExecutor (Command execution with error handling)
        └── HealthMonitor (Health checks and pool metrics)

Only the commands the distributed page cache needs are exposed: GET+TTL in
one pipelined round trip, SET with expiry, DEL, and SCAN for namespace-scoped
resets. Every Redis failure leaves this module as a CacheKeyError (or
CacheConnectionError at connect time), so callers handle one error family.
"""

import time
from collections.abc import AsyncIterator
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from directory_cache.core.config.settings import Settings, get_settings
from directory_cache.core.exceptions import CacheConnectionError, CacheKeyError
from directory_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# LAYER 1: CONNECTION MANAGEMENT
# Handles connection lifecycle and pooling
# =============================================================================


class ConnectionManager:
    """
    Manages Redis connection lifecycle and pooling.

    Responsibility: Connection establishment, pooling, and cleanup.

    A pre-built client can be handed in (tests pass a fakeredis instance).
    Such a client is pinged on connect but never closed here: whoever built
    it owns it.
    """

    def __init__(self, settings: Settings, client: redis.Redis | None = None):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = client
        self._owns_client = client is None
        self._is_connected = False

    async def connect(self) -> redis.Redis:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Returns:
            redis.Redis: Connected Redis client

        Raises:
            CacheConnectionError: If connection fails
        """
        if self._is_connected and self._client:
            return self._client

        redis_settings = self._settings.redis

        try:
            if self._owns_client:
                # STAGE-REDIS.2.1: Create connection pool
                self._pool = ConnectionPool(
                    host=redis_settings.REDIS_HOST,
                    port=redis_settings.REDIS_PORT,
                    db=redis_settings.REDIS_DB,
                    password=redis_settings.REDIS_PASSWORD,
                    max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                    socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                    socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                    retry_on_timeout=True,
                    health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                    decode_responses=True,
                )

                # STAGE-REDIS.2.2: Create Redis client with pool
                self._client = redis.Redis(connection_pool=self._pool)

            # STAGE-REDIS.2.3: Verify connection with ping
            await self._client.ping()

            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
            )

            return self._client

        except (ConnectionError, TimeoutError, OSError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            await self._release()
            raise CacheConnectionError(
                message=f"Failed to connect to Redis: {e}",
                details={
                    "host": redis_settings.REDIS_HOST,
                    "port": redis_settings.REDIS_PORT,
                },
            )

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        await self._release()
        self._is_connected = False
        logger.info("Redis disconnected", stage="REDIS.3")

    async def _release(self) -> None:
        if not self._owns_client:
            return

        if self._client:
            await self._client.aclose()
            self._client = None

        if self._pool:
            await self._pool.disconnect()
            self._pool = None

    async def ping(self) -> bool:
        """Check Redis connection health."""
        try:
            if self._client and self._is_connected:
                await self._client.ping()
                return True
        except (ConnectionError, TimeoutError):
            return False
        return False

    def get_client(self) -> redis.Redis | None:
        return self._client

    def get_pool(self) -> ConnectionPool | None:
        return self._pool

    def is_connected(self) -> bool:
        return self._is_connected


# =============================================================================
# LAYER 2: OPERATION EXECUTOR
# Executes Redis commands with error handling and logging
# =============================================================================


class OperationExecutor:
    """
    Executes Redis operations with consistent error handling.

    Error Handling Strategy:
    - Catch RedisError exceptions
    - Log error with context (stage, key)
    - Raise CacheKeyError with details
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    async def get_with_ttl(self, key: str) -> tuple[str | None, int]:
        """
        Get a value and its remaining TTL in one round trip.

        STAGE-REDIS.GETTTL: Pipelined GET + TTL

        Returns:
            (value or None, ttl seconds; -1 no expiry, -2 missing key)
        """
        try:
            async with self._redis.pipeline(transaction=False) as pipe:
                pipe.get(key)
                pipe.ttl(key)
                value, ttl = await pipe.execute()
            return value, ttl
        except RedisError as e:
            logger.error("Redis GET+TTL failed", stage="REDIS.GETTTL", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis GET+TTL failed: {e}", details={"key": key})

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Set value in Redis.

        STAGE-REDIS.SET: Redis SET operation

        Args:
            key: Redis key
            value: Value to set
            ttl: Time-to-live in seconds (optional)
        """
        try:
            result = await self._redis.set(key, value, ex=ttl)
            return result is not None
        except RedisError as e:
            logger.error("Redis SET failed", stage="REDIS.SET", key=key, error=str(e))
            raise CacheKeyError(message=f"Redis SET failed: {e}", details={"key": key})

    async def delete(self, *keys: str) -> int:
        """
        Delete keys from Redis.

        STAGE-REDIS.DEL: Redis DELETE operation
        """
        if not keys:
            return 0
        try:
            return await self._redis.delete(*keys)
        except RedisError as e:
            logger.error("Redis DELETE failed", stage="REDIS.DEL", keys=len(keys), error=str(e))
            raise CacheKeyError(message=f"Redis DELETE failed: {e}", details={"keys": len(keys)})

    async def scan_iter(self, match: str, count: int) -> AsyncIterator[str]:
        """
        Iterate keys matching a glob pattern with SCAN.

        STAGE-REDIS.SCAN: Cursor-based key iteration

        SCAN never blocks the server the way KEYS does. ``count`` is a hint
        for how many keys the server examines per cursor step.
        """
        try:
            async for key in self._redis.scan_iter(match=match, count=count):
                yield key
        except RedisError as e:
            logger.error("Redis SCAN failed", stage="REDIS.SCAN", match=match, error=str(e))
            raise CacheKeyError(message=f"Redis SCAN failed: {e}", details={"match": match})


# =============================================================================
# LAYER 3: HEALTH MONITORING
# =============================================================================


class HealthMonitor:
    """
    Monitors Redis health and connection pool metrics.

    Metrics Tracked:
    - Connection status
    - Ping latency
    - Pool size and utilization
    """

    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check on Redis connection.

        STAGE-REDIS.HEALTH: Redis health check

        Returns:
            Dict with health status and metrics
        """
        health = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": self._settings.redis.REDIS_HOST,
            "port": self._settings.redis.REDIS_PORT,
            "pool_size": 0,
            "pool_utilization_pct": 0,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.get_client()
        if not client:
            health["status"] = "unhealthy"
            health["error"] = "Client not initialized"
            return health

        try:
            start = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
            return health

        pool = self._conn_mgr.get_pool()
        if pool and hasattr(pool, "_available_connections"):
            available = len(pool._available_connections)
            health["pool_size"] = pool.max_connections
            health["pool_utilization_pct"] = round(
                100.0 * (pool.max_connections - available) / pool.max_connections, 1
            )

        return health


# =============================================================================
# LAYER 4: PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client with connection pooling and health checks.

    Usage:
        client = RedisClient(settings)
        await client.connect()

        await client.set("key", "value", ttl=3600)
        value, ttl = await client.get_with_ttl("key")

        await client.disconnect()

    ``connect()`` retries with exponential backoff
    (REDIS_CONNECT_RETRIES attempts) before giving up with
    CacheConnectionError.
    """

    def __init__(self, settings: Settings | None = None, client: redis.Redis | None = None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization

        Args:
            settings: Application settings (global settings when omitted)
            client: Pre-built redis.asyncio client to use instead of a pool
        """
        self._settings = settings or get_settings()

        self._conn_mgr = ConnectionManager(self._settings, client=client)
        self._executor: OperationExecutor | None = None
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)

        logger.debug(
            "Redis client initialized",
            stage="REDIS.1",
            host=self._settings.redis.REDIS_HOST,
            port=self._settings.redis.REDIS_PORT,
        )

    async def connect(self) -> None:
        """
        Establish connection to Redis, retrying transient failures.

        Raises:
            CacheConnectionError: If every attempt fails
        """
        attempts = max(1, self._settings.redis.REDIS_CONNECT_RETRIES)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.1, max=2.0),
            retry=retry_if_exception_type(CacheConnectionError),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                "Redis connect retry",
                stage="REDIS.2",
                attempt=retry_state.attempt_number,
                delay=round(retry_state.idle_for, 3),
            ),
        ):
            with attempt:
                client = await self._conn_mgr.connect()

        self._executor = OperationExecutor(client)

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        await self._conn_mgr.disconnect()
        self._executor = None

    async def ping(self) -> bool:
        return await self._conn_mgr.ping()

    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise CacheKeyError(message="Redis client is not connected")
        return self._executor

    # -------------------------------------------------------------------------
    # Delegate to OperationExecutor
    # -------------------------------------------------------------------------

    async def get_with_ttl(self, key: str) -> tuple[str | None, int]:
        return await self._require_executor().get_with_ttl(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        return await self._require_executor().set(key, value, ttl=ttl)

    async def delete(self, *keys: str) -> int:
        return await self._require_executor().delete(*keys)

    def scan_iter(self, match: str, count: int) -> AsyncIterator[str]:
        return self._require_executor().scan_iter(match=match, count=count)

    async def health_check(self) -> dict[str, Any]:
        """Perform health check on Redis connection."""
        return await self._health_monitor.health_check()
