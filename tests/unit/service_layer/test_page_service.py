"""
Unit Tests for PageCacheService

Cached accessors per page type, per-request permissions and the
invalidation helpers.
"""

import pytest

from directory_cache.core.config.constants import CacheSource
from directory_cache.pages.models import PersonPageData, Principal


@pytest.mark.unit
class TestPersonPages:
    @pytest.mark.asyncio
    async def test_person_page_cached(self, page_service, store):
        first = await page_service.get_cached_person_data("springfield", "jane-doe")
        second = await page_service.get_cached_person_data("springfield", "jane-doe")

        assert first.source is CacheSource.DATABASE
        assert second.source is CacheSource.MEMORY
        assert isinstance(second.data, PersonPageData)
        assert second.data.person.slug == "jane-doe"
        assert store.calls["find_person"] == 1

    @pytest.mark.asyncio
    async def test_permissions_resolved_per_request(self, page_service):
        admin = Principal(user_id="u1", roles=frozenset({"site-admin"}))

        as_admin = await page_service.get_cached_person_data("springfield", "jane-doe", principal=admin)
        as_visitor = await page_service.get_cached_person_data("springfield", "jane-doe")

        assert as_admin.data.permissions.is_site_admin
        assert as_visitor.source is CacheSource.MEMORY
        assert not as_visitor.data.permissions.is_admin

    @pytest.mark.asyncio
    async def test_permissions_never_reach_the_cache(self, page_service, cache_manager):
        admin = Principal(user_id="u1", roles=frozenset({"site-admin"}))
        await page_service.get_cached_person_data("springfield", "jane-doe", principal=admin)

        cached = await cache_manager.memory.get(cache_manager.keys.person("springfield", "jane-doe"))

        assert "permissions" not in cached

    @pytest.mark.asyncio
    async def test_missing_person_cached_as_none(self, page_service, store):
        first = await page_service.get_cached_person_data("springfield", "nobody")
        second = await page_service.get_cached_person_data("springfield", "nobody")

        assert first.data is None
        assert second.data is None
        assert second.source is CacheSource.MEMORY
        assert store.calls["find_person"] == 1

    @pytest.mark.asyncio
    async def test_invalidate_person(self, page_service, store):
        await page_service.get_cached_person_data("springfield", "jane-doe")

        await page_service.invalidate_person_cache("springfield", "jane-doe")
        result = await page_service.get_cached_person_data("springfield", "jane-doe")

        assert result.source is CacheSource.DATABASE
        assert store.calls["find_person"] == 2

    @pytest.mark.asyncio
    async def test_slug_with_separator_is_cached_and_invalidated(self, page_service, store):
        first = await page_service.get_cached_person_data("a:b", "joe")
        second = await page_service.get_cached_person_data("a:b", "joe")

        assert first.data is None
        assert second.source is CacheSource.MEMORY

        await page_service.invalidate_person_cache("a:b", "joe")
        third = await page_service.get_cached_person_data("a:b", "joe")

        assert third.source is CacheSource.DATABASE
        assert store.calls["find_person"] == 2

    @pytest.mark.asyncio
    async def test_separator_slugs_do_not_share_an_entry(self, page_service, store):
        await page_service.get_cached_person_data("a:b", "joe")
        result = await page_service.get_cached_person_data("a", "b:joe")

        assert result.source is CacheSource.DATABASE
        assert store.calls["find_person"] == 2


@pytest.mark.unit
class TestTownAndHomepage:
    @pytest.mark.asyncio
    async def test_town_page_cached(self, page_service, store):
        await page_service.get_cached_town_data("springfield")
        result = await page_service.get_cached_town_data("springfield")

        assert result.source is CacheSource.MEMORY
        assert result.data.name == "Springfield"
        assert store.calls["find_town"] == 1

    @pytest.mark.asyncio
    async def test_edit_then_invalidate_shows_fresh_data(self, page_service, store):
        await page_service.get_cached_town_data("springfield")
        store.towns["springfield"]["name"] = "Springfield Township"

        stale = await page_service.get_cached_town_data("springfield")
        await page_service.invalidate_town_cache("springfield")
        fresh = await page_service.get_cached_town_data("springfield")

        assert stale.data.name == "Springfield"
        assert fresh.data.name == "Springfield Township"

    @pytest.mark.asyncio
    async def test_homepage_cached(self, page_service, store):
        await page_service.get_cached_homepage_data()
        result = await page_service.get_cached_homepage_data()

        assert result.source is CacheSource.MEMORY
        assert result.data.total_detained == 1
        assert store.calls["count_detained"] == 1

    @pytest.mark.asyncio
    async def test_invalidate_homepage(self, page_service, store):
        await page_service.get_cached_homepage_data()

        await page_service.invalidate_homepage_cache()
        await page_service.get_cached_homepage_data()

        assert store.calls["count_detained"] == 2

    @pytest.mark.asyncio
    async def test_invalidate_all_town_caches(self, page_service, store):
        from tests.test_fixtures.directory_factory import DirectoryTestFactory

        store.towns["shelbyville"] = DirectoryTestFactory.town_page("shelbyville")
        await page_service.get_cached_town_data("springfield")
        await page_service.get_cached_town_data("shelbyville")

        count = await page_service.invalidate_all_town_caches()
        await page_service.get_cached_town_data("springfield")
        await page_service.get_cached_town_data("shelbyville")

        assert count == 2
        assert store.calls["find_town"] == 4

    @pytest.mark.asyncio
    async def test_stats_pass_through(self, page_service):
        await page_service.get_cached_homepage_data()

        stats = page_service.get_stats()

        assert stats["database"]["queries"] == 1
        assert "memory_usage" in stats
