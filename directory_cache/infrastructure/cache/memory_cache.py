"""
In-Process Memory Cache

Size-bounded key/value store that lives inside one worker process. It is the
first tier of the read-through path: a hit here costs no network round trip.

STAGE-1.0: Memory tier

Implementation Details:
- Values are stored as JSON text so a cached snapshot can never be mutated
  by the caller that read it
- Entry size is estimated as ``len(text) * 2 + 100`` bytes (UTF-16 style
  accounting plus a fixed overhead), and a running counter tracks the total
- When an insert would exceed the byte budget, entries are evicted in
  ascending expiry order (soonest to expire first, not LRU)
- Expiry is lazy: an expired entry is dropped when it is read. An optional
  background task sweeps expired entries periodically
- All mutation happens under one asyncio.Lock, so the size counter never
  drifts from the stored entries

Failures inside this tier never propagate: they are logged and the caller
sees a miss (reads) or nothing at all (writes).
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from directory_cache.core.config.constants import (
    MEMORY_BYTES_PER_CHAR,
    MEMORY_ENTRY_OVERHEAD_BYTES,
    Stage,
)
from directory_cache.core.exceptions import CacheSerializationError
from directory_cache.core.interfaces.cache import MISS, Miss
from directory_cache.core.logging.logger import get_logger, log_stage
from directory_cache.infrastructure.cache import serialization

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """
    One stored value.

    Attributes:
        value: Serialized JSON text
        expires: Absolute expiry (epoch seconds)
        size: Estimated size in bytes
        ttl_ms: TTL the entry was written with, in milliseconds
        cached_at: Write time (epoch seconds)
    """

    value: str
    expires: float
    size: int
    ttl_ms: int
    cached_at: float


@dataclass(frozen=True)
class MemoryStats:
    """Process-wide memory tier usage."""

    current_size: int
    max_size: int
    entries: int

    def to_dict(self) -> dict[str, int]:
        return {
            "current_size": self.current_size,
            "max_size": self.max_size,
            "entries": self.entries,
        }


def estimate_size(text: str) -> int:
    """Approximate byte footprint of a serialized value."""
    return len(text) * MEMORY_BYTES_PER_CHAR + MEMORY_ENTRY_OVERHEAD_BYTES


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class MemoryCache:
    """
    Bounded, size-tracked in-process cache with expiry-ordered eviction.

    Usage:
        cache = MemoryCache(default_ttl=300, max_size_bytes=100 * 1024 * 1024)
        await cache.set("town:springfield:v1", snapshot)
        value = await cache.get("town:springfield:v1")
        if value is MISS:
            ...

    Args:
        default_ttl: TTL in seconds used when ``set`` gets no ttl
        max_size_bytes: Byte budget; 0 means unlimited
        cleanup_interval: Seconds between background sweeps (None disables)
        clock: Time source returning epoch seconds
    """

    def __init__(
        self,
        default_ttl: float,
        max_size_bytes: int,
        cleanup_interval: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._default_ttl = default_ttl
        self._max_size = max_size_bytes
        self._cleanup_interval = cleanup_interval
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        self._current_size = 0
        self._lock = asyncio.Lock()
        self._cleanup_task: asyncio.Task | None = None

    # -------------------------------------------------------------------------
    # Cache contract
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | Miss:
        """
        Get a value, dropping it first if it has expired.

        Returns:
            The cached value (possibly None) or MISS
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS

            if self._clock() > entry.expires:
                self._remove(key)
                return MISS

            try:
                return serialization.loads(entry.value)
            except CacheSerializationError as e:
                logger.warning(
                    "Dropping unreadable memory entry",
                    stage=Stage.MEMORY_LOOKUP.value,
                    cache_key=key,
                    error=str(e),
                )
                self._remove(key)
                return MISS

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store a value, evicting soonest-to-expire entries if over budget.

        An entry that cannot fit even after eviction is skipped silently.
        """
        try:
            text = serialization.dumps(value)
        except CacheSerializationError as e:
            logger.warning(
                "Memory cache write skipped: value not serializable",
                stage=Stage.TIER_POPULATION.value,
                cache_key=key,
                error=str(e),
            )
            return

        ttl_seconds = ttl or self._default_ttl
        size = estimate_size(text)
        now = self._clock()
        entry = CacheEntry(
            value=text,
            expires=now + ttl_seconds,
            size=size,
            ttl_ms=int(ttl_seconds * 1000),
            cached_at=now,
        )

        async with self._lock:
            if key in self._entries:
                self._remove(key)

            if self._max_size and size > self._max_size:
                logger.debug(
                    "Memory cache write skipped: entry larger than budget",
                    stage=Stage.EVICTION.value,
                    cache_key=key,
                    size=size,
                    max_size=self._max_size,
                )
                return

            if self._max_size and self._current_size + size > self._max_size:
                self._evict_for(size)

            if self._max_size and self._current_size + size > self._max_size:
                logger.debug(
                    "Memory cache write skipped: no room after eviction",
                    stage=Stage.EVICTION.value,
                    cache_key=key,
                    size=size,
                )
                return

            self._entries[key] = entry
            self._current_size += size

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._remove(key)

    async def reset(self) -> int:
        """Remove every entry. Returns the number removed."""
        async with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._current_size = 0

        log_stage(logger, Stage.RESET, "Memory cache reset", removed=removed)
        return removed

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def get_entry_info(self, key: str) -> dict[str, Any] | None:
        """
        Describe a stored entry without touching it.

        Returns:
            {ttl (seconds), cached_at, expires_at, size} with ISO timestamps, or None
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        return {
            "ttl": entry.ttl_ms / 1000,
            "cached_at": _iso(entry.cached_at),
            "expires_at": _iso(entry.expires),
            "size": entry.size,
        }

    def get_memory_stats(self) -> MemoryStats:
        return MemoryStats(
            current_size=self._current_size,
            max_size=self._max_size,
            entries=len(self._entries),
        )

    # -------------------------------------------------------------------------
    # Expiry sweeping
    # -------------------------------------------------------------------------

    async def cleanup_expired(self) -> int:
        """
        Remove every expired entry.

        STAGE-C: Periodic cleanup

        Returns:
            int: Number of entries removed
        """
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry.expires]
            for key in expired:
                self._remove(key)

        if expired:
            log_stage(
                logger,
                Stage.CLEANUP,
                "Expired memory entries removed",
                level="debug",
                removed=len(expired),
                remaining=len(self._entries),
            )
        return len(expired)

    def start_cleanup(self) -> None:
        """Start the background sweep if an interval is configured."""
        if not self._cleanup_interval or self._cleanup_task is not None:
            return
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        log_stage(
            logger,
            Stage.LIFECYCLE,
            "Memory cache cleanup started",
            interval_seconds=self._cleanup_interval,
        )

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval)
            await self.cleanup_expired()

    async def close(self) -> None:
        """Stop the background sweep."""
        if self._cleanup_task is None:
            return
        self._cleanup_task.cancel()
        try:
            await self._cleanup_task
        except asyncio.CancelledError:
            pass
        self._cleanup_task = None

    # -------------------------------------------------------------------------
    # Internals (caller holds the lock)
    # -------------------------------------------------------------------------

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self._current_size -= entry.size

    def _evict_for(self, size: int) -> None:
        evicted = 0
        for key, _ in sorted(self._entries.items(), key=lambda item: item[1].expires):
            if self._current_size + size <= self._max_size:
                break
            self._remove(key)
            evicted += 1

        if evicted:
            log_stage(
                logger,
                Stage.EVICTION,
                "Memory entries evicted",
                level="debug",
                evicted=evicted,
                current_size=self._current_size,
                max_size=self._max_size,
            )


class DisabledMemoryCache:
    """
    Null-object memory tier used when CACHE_MEMORY_ENABLE is false.

    Every read is a miss and every write is a no-op, so the orchestrator
    never branches on whether the memory tier is active.
    """

    async def get(self, key: str) -> Miss:
        return MISS

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        return None

    async def delete(self, key: str) -> None:
        return None

    async def reset(self) -> int:
        return 0

    def get_entry_info(self, key: str) -> None:
        return None

    def get_memory_stats(self) -> MemoryStats:
        return MemoryStats(current_size=0, max_size=0, entries=0)

    async def cleanup_expired(self) -> int:
        return 0

    def start_cleanup(self) -> None:
        return None

    async def close(self) -> None:
        return None
