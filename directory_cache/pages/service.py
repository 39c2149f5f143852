"""
Page Cache Service

Cached accessors and invalidation for the three page types. This is the
surface the page-rendering layer talks to:

    result = await pages.get_cached_person_data("springfield", "jane-doe", principal=user)
    result.data        # PersonPageData | None
    result.source      # memory | redis | database

    await pages.invalidate_person_cache("springfield", "jane-doe")

Invalidation is manual and key-scoped. The code that edits an entity calls
the matching invalidate method; an edit that changes homepage-visible data
must also call ``invalidate_homepage_cache()``.
"""

from typing import Any

from directory_cache.core.config.constants import CacheEntity, Stage
from directory_cache.core.logging.logger import get_logger, log_stage
from directory_cache.infrastructure.cache.cache_manager import CacheManager, CacheResult
from directory_cache.pages.homepage import HomepageLoader
from directory_cache.pages.models import (
    HomepageData,
    PersonPageData,
    PersonPageSnapshot,
    Principal,
    TownPageData,
)
from directory_cache.pages.permissions import RolePermissionResolver
from directory_cache.pages.person import PersonPageLoader
from directory_cache.pages.sources import (
    DirectoryStore,
    GeolocationService,
    ImageUrlGenerator,
    PermissionResolver,
    SystemConfigProvider,
)
from directory_cache.pages.town import TownPageLoader

logger = get_logger(__name__)


class PageCacheService:
    """
    Cached page data for persons, towns and the homepage.

    Args:
        cache: Initialized CacheManager
        store: Relational source of truth
        image_urls: Image URL generator
        permissions: Permission resolver (role-based when omitted)
        geolocation: Support map counts service
        system_config: Site-wide layout/theme defaults
    """

    def __init__(
        self,
        cache: CacheManager,
        store: DirectoryStore,
        image_urls: ImageUrlGenerator,
        permissions: PermissionResolver | None = None,
        geolocation: GeolocationService | None = None,
        system_config: SystemConfigProvider | None = None,
    ):
        self._cache = cache
        self._store = store
        self._permissions = permissions or RolePermissionResolver()

        self._person_loader = PersonPageLoader(store, image_urls, geolocation, system_config)
        self._town_loader = TownPageLoader(store, image_urls)
        self._homepage_loader = HomepageLoader(store, image_urls)

    @property
    def cache(self) -> CacheManager:
        return self._cache

    # -------------------------------------------------------------------------
    # Cached reads
    # -------------------------------------------------------------------------

    async def get_cached_person_data(
        self,
        town_slug: str,
        person_slug: str,
        *,
        principal: Principal | None = None,
        force_refresh: bool = False,
        ttl: float | None = None,
    ) -> CacheResult[PersonPageData]:
        """
        Person page data, served from cache when possible.

        The cached snapshot is the same for every visitor. Permission flags
        for ``principal`` are resolved on every call and never cached.
        """
        key = self._cache.keys.person(town_slug, person_slug)
        result = await self._cache.read_through(
            key,
            lambda: self._person_loader.load(town_slug, person_slug),
            model=PersonPageSnapshot,
            entity=CacheEntity.PERSON,
            force_refresh=force_refresh,
            ttl=ttl,
        )

        if result.data is None:
            return CacheResult(data=None, source=result.source, latency_ms=result.latency_ms)

        snapshot = result.data
        permissions = await self._permissions.resolve(
            principal, snapshot.person.id, snapshot.person.town_id
        )
        return CacheResult(
            data=PersonPageData.from_snapshot(snapshot, permissions),
            source=result.source,
            latency_ms=result.latency_ms,
        )

    async def get_cached_town_data(
        self,
        town_slug: str,
        *,
        force_refresh: bool = False,
        ttl: float | None = None,
    ) -> CacheResult[TownPageData]:
        return await self._cache.read_through(
            self._cache.keys.town(town_slug),
            lambda: self._town_loader.load(town_slug),
            model=TownPageData,
            entity=CacheEntity.TOWN,
            force_refresh=force_refresh,
            ttl=ttl,
        )

    async def get_cached_homepage_data(
        self,
        *,
        force_refresh: bool = False,
        ttl: float | None = None,
    ) -> CacheResult[HomepageData]:
        return await self._cache.read_through(
            self._cache.keys.homepage(),
            self._homepage_loader.load,
            model=HomepageData,
            entity=CacheEntity.HOMEPAGE,
            force_refresh=force_refresh,
            ttl=ttl,
        )

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    async def invalidate_person_cache(self, town_slug: str, person_slug: str) -> None:
        await self._cache.invalidate(self._cache.keys.person(town_slug, person_slug))

    async def invalidate_town_cache(self, town_slug: str) -> None:
        await self._cache.invalidate(self._cache.keys.town(town_slug))

    async def invalidate_homepage_cache(self) -> None:
        await self._cache.invalidate(self._cache.keys.homepage())

    async def invalidate_all_town_caches(self) -> int:
        """
        Bust the page key of every active town.

        Returns:
            int: Number of town keys invalidated
        """
        slugs = await self._store.list_active_town_slugs()
        await self._cache.invalidate_many([self._cache.keys.town(slug) for slug in slugs])
        log_stage(logger, Stage.INVALIDATION, "All town caches invalidated", towns=len(slugs))
        return len(slugs)

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        return self._cache.get_stats()
