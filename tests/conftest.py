"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.

Redis is replaced by fakeredis; nothing here needs a running server.
"""

import fakeredis
import fakeredis.aioredis
import pytest

from directory_cache.infrastructure.cache.cache_manager import CacheManager
from directory_cache.pages.media import ImageUrlBuilder
from directory_cache.pages.service import PageCacheService
from tests.test_fixtures.directory_factory import (
    DirectoryTestFactory,
    FakeDirectoryStore,
    FakeGeolocation,
    FakeSystemConfig,
)
from tests.test_fixtures.settings_factory import make_settings

# ============================================================================
# Time
# ============================================================================


class FakeClock:
    """Manually advanced epoch clock for the memory tier."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def settings():
    return make_settings()


# ============================================================================
# Redis Fixtures
# ============================================================================


@pytest.fixture
def redis_server():
    """One fake Redis server per test; clients built on it share data."""
    return fakeredis.FakeServer()


@pytest.fixture
async def fake_redis(redis_server):
    client = fakeredis.aioredis.FakeRedis(server=redis_server, decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


# ============================================================================
# Directory Fixtures
# ============================================================================


@pytest.fixture
def store():
    person = DirectoryTestFactory.person()
    return FakeDirectoryStore(
        persons={("springfield", "jane-doe"): person},
        towns={"springfield": DirectoryTestFactory.town_page("springfield")},
    )


@pytest.fixture
def image_urls():
    return ImageUrlBuilder(cdn_url="https://cdn.example.org")


@pytest.fixture
def geolocation():
    return FakeGeolocation()


@pytest.fixture
def system_config():
    return FakeSystemConfig()


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
async def cache_manager(settings, fake_redis, clock):
    """Initialized CacheManager on fakeredis with a fake memory clock."""
    manager = CacheManager(settings=settings, redis_client=fake_redis, clock=clock)
    await manager.initialize()
    yield manager
    await manager.shutdown()


@pytest.fixture
async def page_service(cache_manager, store, image_urls, geolocation, system_config):
    return PageCacheService(
        cache_manager,
        store,
        image_urls,
        geolocation=geolocation,
        system_config=system_config,
    )
