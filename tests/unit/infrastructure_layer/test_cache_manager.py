"""
Unit Tests for CacheManager

Tests the read-through path over both tiers: tier order, backfill, force
refresh, negative caching, invalidation and degradation when a tier fails.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from directory_cache.core.config.constants import CacheEntity, CacheSource
from directory_cache.core.exceptions import CacheKeyError, SourceFetchError
from directory_cache.core.interfaces.cache import MISS
from directory_cache.infrastructure.cache.cache_manager import CacheManager
from directory_cache.pages.models import HomepageData, HomepageTown
from tests.test_fixtures.settings_factory import make_settings

KEY = "homepage:v1"


def homepage(total: int = 3) -> HomepageData:
    return HomepageData(
        towns=[HomepageTown(id="t1", name="Springfield", slug="springfield", state="IL", detained_count=total)],
        total_detained=total,
    )


class CountingFetch:
    """Source stand-in that counts calls."""

    def __init__(self, result=None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


async def read(manager: CacheManager, fetch, **kwargs):
    return await manager.read_through(KEY, fetch, model=HomepageData, entity=CacheEntity.HOMEPAGE, **kwargs)


@pytest.mark.unit
class TestReadThrough:
    """Tier order and population."""

    @pytest.mark.asyncio
    async def test_cold_read_fetches_and_populates_both_tiers(self, cache_manager):
        fetch = CountingFetch(homepage())

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.DATABASE
        assert result.data == homepage()
        assert fetch.calls == 1
        assert await cache_manager.memory.get(KEY) == homepage().model_dump(mode="json")
        assert await cache_manager.distributed.get(KEY) == homepage().model_dump(mode="json")

    @pytest.mark.asyncio
    async def test_warm_read_served_from_memory(self, cache_manager):
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch)

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.MEMORY
        assert result.data == homepage()
        assert isinstance(result.data, HomepageData)
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_redis_hit_backfills_memory(self, cache_manager):
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch)
        await cache_manager.memory.delete(KEY)

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.REDIS
        assert fetch.calls == 1
        assert await cache_manager.memory.get(KEY) is not MISS

        again = await read(cache_manager, fetch)
        assert again.source is CacheSource.MEMORY

    @pytest.mark.asyncio
    async def test_backfill_uses_memory_ttl(self, cache_manager, clock):
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch)
        await cache_manager.memory.delete(KEY)
        await read(cache_manager, fetch)

        clock.advance(301)

        result = await read(cache_manager, fetch)
        assert result.source is CacheSource.REDIS

    @pytest.mark.asyncio
    async def test_memory_expiry_falls_back_to_redis(self, cache_manager, clock):
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch, ttl=1)

        clock.advance(1.1)
        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.REDIS
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_lookups_and_rewrites(self, cache_manager):
        fetch = CountingFetch(homepage(total=1))
        await read(cache_manager, fetch)

        fetch.result = homepage(total=2)
        refreshed = await read(cache_manager, fetch, force_refresh=True)

        assert refreshed.source is CacheSource.DATABASE
        assert refreshed.data.total_detained == 2
        assert fetch.calls == 2

        after = await read(cache_manager, fetch)
        assert after.source is CacheSource.MEMORY
        assert after.data.total_detained == 2

    @pytest.mark.asyncio
    async def test_ttl_override_applies_to_redis(self, cache_manager, fake_redis):
        await read(cache_manager, CountingFetch(homepage()), ttl=30)

        ttl = await fake_redis.ttl(cache_manager.distributed.storage_key(KEY))
        assert 0 < ttl <= 30

    @pytest.mark.asyncio
    async def test_latency_is_reported(self, cache_manager):
        result = await read(cache_manager, CountingFetch(homepage()))

        assert result.latency_ms >= 0


@pytest.mark.unit
class TestNegativeCaching:
    @pytest.mark.asyncio
    async def test_none_is_cached(self, cache_manager):
        fetch = CountingFetch(None)

        first = await read(cache_manager, fetch)
        second = await read(cache_manager, fetch)

        assert first.data is None
        assert first.source is CacheSource.DATABASE
        assert second.data is None
        assert second.source is CacheSource.MEMORY
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_none_is_cached_in_redis(self, cache_manager):
        fetch = CountingFetch(None)
        await read(cache_manager, fetch)
        await cache_manager.memory.delete(KEY)

        result = await read(cache_manager, fetch)

        assert result.data is None
        assert result.source is CacheSource.REDIS
        assert fetch.calls == 1


@pytest.mark.unit
class TestInvalidation:
    @pytest.mark.asyncio
    async def test_invalidate_clears_both_tiers(self, cache_manager):
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch)

        await cache_manager.invalidate(KEY)

        assert await cache_manager.memory.get(KEY) is MISS
        assert await cache_manager.distributed.get(KEY) is MISS
        result = await read(cache_manager, fetch)
        assert result.source is CacheSource.DATABASE
        assert fetch.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_missing_key_is_harmless(self, cache_manager):
        await cache_manager.invalidate("town:nowhere:v1")

    @pytest.mark.asyncio
    async def test_invalidate_many(self, cache_manager):
        for slug in ("a", "b"):
            key = cache_manager.keys.town(slug)
            await cache_manager.memory.set(key, {"slug": slug})

        await cache_manager.invalidate_many([cache_manager.keys.town("a"), cache_manager.keys.town("b")])

        assert cache_manager.memory.get_memory_stats().entries == 0

    @pytest.mark.asyncio
    async def test_reset_clears_both_tiers(self, cache_manager):
        await read(cache_manager, CountingFetch(homepage()))

        removed = await cache_manager.reset()

        assert removed == {"memory": 1, "redis": 1}


@pytest.mark.unit
class TestDegradation:
    """A failing tier costs latency, never correctness."""

    @pytest.mark.asyncio
    async def test_redis_read_failure_falls_through_to_source(self, cache_manager, monkeypatch):
        fetch = CountingFetch(homepage())
        monkeypatch.setattr(
            cache_manager.distributed, "get_entry", AsyncMock(side_effect=CacheKeyError("down"))
        )

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.DATABASE
        assert result.data == homepage()

    @pytest.mark.asyncio
    async def test_redis_write_failure_still_returns_data(self, cache_manager, monkeypatch):
        monkeypatch.setattr(
            cache_manager.distributed, "set", AsyncMock(side_effect=CacheKeyError("read only"))
        )

        result = await read(cache_manager, CountingFetch(homepage()))

        assert result.data == homepage()
        assert await cache_manager.memory.get(KEY) is not MISS

    @pytest.mark.asyncio
    async def test_slow_tier_times_out_as_miss(self, cache_manager, monkeypatch):
        async def hang(key):
            await asyncio.sleep(5)

        monkeypatch.setattr(cache_manager.distributed, "get_entry", hang)
        fetch = CountingFetch(homepage())

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.DATABASE
        assert result.latency_ms < 2000

    @pytest.mark.asyncio
    async def test_memory_failure_falls_through(self, cache_manager, monkeypatch):
        monkeypatch.setattr(cache_manager.memory, "get", AsyncMock(side_effect=RuntimeError("boom")))
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch)

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.REDIS

    @pytest.mark.asyncio
    async def test_corrupt_redis_payload_refetches(self, cache_manager, fake_redis):
        await fake_redis.set(cache_manager.distributed.storage_key(KEY), "\x00garbage")
        fetch = CountingFetch(homepage())

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.DATABASE
        assert fetch.calls == 1
        assert await cache_manager.distributed.get(KEY) == homepage().model_dump(mode="json")

    @pytest.mark.asyncio
    async def test_payload_of_old_shape_is_a_miss(self, cache_manager):
        await cache_manager.memory.set(KEY, {"towns": [], "legacy_field": True})
        fetch = CountingFetch(homepage())

        result = await read(cache_manager, fetch)

        assert result.source is CacheSource.DATABASE
        assert fetch.calls == 1

    @pytest.mark.asyncio
    async def test_source_errors_propagate_and_nothing_is_cached(self, cache_manager):
        fetch = CountingFetch(error=SourceFetchError("database unavailable"))

        with pytest.raises(SourceFetchError):
            await read(cache_manager, fetch)

        assert await cache_manager.memory.get(KEY) is MISS
        assert await cache_manager.distributed.get(KEY) is MISS

    @pytest.mark.asyncio
    async def test_unreachable_redis_leaves_tier_absent(self, clock):
        broken = AsyncMock()
        broken.ping.side_effect = RedisConnectionError("refused")
        manager = CacheManager(settings=make_settings(), redis_client=broken, clock=clock)

        await manager.initialize()
        try:
            assert manager.distributed is None
            fetch = CountingFetch(homepage())
            await read(manager, fetch)
            result = await read(manager, fetch)
            assert result.source is CacheSource.MEMORY

            health = await manager.health_check()
            assert health["status"] == "degraded"
            assert health["redis"]["available"] is False
        finally:
            await manager.shutdown()


@pytest.mark.unit
class TestTierConfiguration:
    @pytest.mark.asyncio
    async def test_memory_disabled_serves_from_redis(self, fake_redis, clock):
        manager = CacheManager(
            settings=make_settings(CACHE_MEMORY_ENABLE=False), redis_client=fake_redis, clock=clock
        )
        await manager.initialize()
        try:
            fetch = CountingFetch(homepage())
            await read(manager, fetch)
            result = await read(manager, fetch)

            assert result.source is CacheSource.REDIS
            stats = manager.get_stats()
            assert stats["memory"]["hits"] == 0
            assert stats["memory"]["misses"] == 0
            assert stats["tiers"] == {"memory": False, "redis": True}
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_both_tiers_disabled_always_fetches(self, clock):
        manager = CacheManager(
            settings=make_settings(CACHE_MEMORY_ENABLE=False, CACHE_REDIS_ENABLE=False), clock=clock
        )
        await manager.initialize()
        try:
            fetch = CountingFetch(homepage())
            await read(manager, fetch)
            result = await read(manager, fetch)

            assert result.source is CacheSource.DATABASE
            assert fetch.calls == 2
            assert (await manager.health_check())["status"] == "healthy"
        finally:
            await manager.shutdown()


@pytest.mark.unit
class TestStatsAndHealth:
    @pytest.mark.asyncio
    async def test_stats_follow_the_read_path(self, cache_manager):
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch)
        await read(cache_manager, fetch)

        stats = cache_manager.get_stats()

        assert stats["memory"]["hits"] == 1
        assert stats["memory"]["misses"] == 1
        assert stats["memory"]["hit_rate"] == 50.0
        assert stats["redis"]["misses"] == 1
        assert stats["database"]["by_key"] == {KEY: 1}
        assert stats["memory"]["by_key"][KEY]["ttl"] == 300
        assert stats["memory_usage"]["entries"] == 1

    @pytest.mark.asyncio
    async def test_redis_hit_records_remaining_ttl_and_expiry(self, cache_manager):
        fetch = CountingFetch(homepage())
        await read(cache_manager, fetch)
        await cache_manager.memory.delete(KEY)
        await read(cache_manager, fetch)

        key_stats = cache_manager.get_stats()["redis"]["by_key"][KEY]

        assert 3590 <= key_stats["remaining_ttl"] <= 3600
        assert key_stats["expires_at"] is not None
        assert "ttl" not in key_stats

    @pytest.mark.asyncio
    async def test_health_check_with_both_tiers(self, cache_manager):
        health = await cache_manager.health_check()

        assert health["status"] == "healthy"
        assert health["memory"]["enabled"] is True
        assert health["redis"]["available"] is True
