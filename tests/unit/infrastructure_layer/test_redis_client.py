"""
Unit Tests for RedisClient

Connection lifecycle, retries and command wrappers over fakeredis.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from directory_cache.core.exceptions import CacheConnectionError, CacheKeyError
from directory_cache.infrastructure.cache.redis_client import RedisClient
from tests.test_fixtures.settings_factory import make_settings


@pytest.mark.unit
class TestRedisClientLifecycle:
    @pytest.mark.asyncio
    async def test_connect_with_injected_client(self, settings, fake_redis):
        client = RedisClient(settings, client=fake_redis)

        await client.connect()

        assert client.is_connected()
        assert await client.ping() is True

    @pytest.mark.asyncio
    async def test_disconnect_leaves_injected_client_open(self, settings, fake_redis):
        client = RedisClient(settings, client=fake_redis)
        await client.connect()

        await client.disconnect()

        assert not client.is_connected()
        assert await fake_redis.ping() is True

    @pytest.mark.asyncio
    async def test_connect_retries_then_raises(self):
        settings = make_settings(REDIS_CONNECT_RETRIES=3)
        broken = AsyncMock()
        broken.ping.side_effect = RedisConnectionError("refused")

        client = RedisClient(settings, client=broken)

        with pytest.raises(CacheConnectionError):
            await client.connect()
        assert broken.ping.await_count == 3

    @pytest.mark.asyncio
    async def test_commands_require_connection(self, settings):
        client = RedisClient(settings, client=AsyncMock())

        with pytest.raises(CacheKeyError):
            await client.get_with_ttl("k")


@pytest.mark.unit
class TestRedisCommands:
    @pytest.fixture
    async def client(self, settings, fake_redis):
        client = RedisClient(settings, client=fake_redis)
        await client.connect()
        return client

    @pytest.mark.asyncio
    async def test_set_get_with_ttl(self, client):
        await client.set("k", "v", ttl=30)

        value, ttl = await client.get_with_ttl("k")

        assert value == "v"
        assert 0 < ttl <= 30

    @pytest.mark.asyncio
    async def test_get_with_ttl_missing_key(self, client):
        assert await client.get_with_ttl("missing") == (None, -2)

    @pytest.mark.asyncio
    async def test_delete_many(self, client):
        await client.set("a", "1")
        await client.set("b", "2")

        assert await client.delete("a", "b", "c") == 2
        assert await client.delete() == 0

    @pytest.mark.asyncio
    async def test_scan_iter(self, client):
        await client.set("ns:1", "x")
        await client.set("ns:2", "x")
        await client.set("other", "x")

        keys = [key async for key in client.scan_iter(match="ns:*", count=10)]

        assert sorted(keys) == ["ns:1", "ns:2"]

    @pytest.mark.asyncio
    async def test_redis_errors_become_cache_key_errors(self, client, fake_redis, monkeypatch):
        monkeypatch.setattr(fake_redis, "set", AsyncMock(side_effect=ResponseError("READONLY")))

        with pytest.raises(CacheKeyError):
            await client.set("k", "v")

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        health = await client.health_check()

        assert health["status"] == "healthy"
        assert health["connected"] is True
        assert health["ping_latency_ms"] is not None
