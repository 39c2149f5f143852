"""
FastAPI Dependency Injection

Request-scoped access to the objects the lifespan builds once at startup and
stores on ``app.state``:

- ``app.state.settings``: Settings
- ``app.state.cache_manager``: CacheManager
- ``app.state.page_service``: PageCacheService
- ``app.state.principal_provider``: optional callable resolving the
  requesting user

Routes declare what they need with the ``*Dep`` aliases:

    @router.get("/pages/home")
    async def homepage(pages: PageServiceDep):
        ...

Tests can replace any of these with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from directory_cache.core.config.settings import Settings
from directory_cache.infrastructure.cache.cache_manager import CacheManager
from directory_cache.pages.models import Principal
from directory_cache.pages.service import PageCacheService


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_cache_manager(request: Request) -> CacheManager:
    """
    CacheManager created by the application lifespan.

    Raises:
        RuntimeError: If the lifespan has not run
    """
    cache_manager = getattr(request.app.state, "cache_manager", None)
    if cache_manager is None:
        raise RuntimeError(
            "CacheManager not initialized in app.state. "
            "This indicates the application lifespan startup didn't complete properly."
        )
    return cache_manager


def get_page_service(request: Request) -> PageCacheService:
    """PageCacheService created by the application lifespan."""
    page_service = getattr(request.app.state, "page_service", None)
    if page_service is None:
        raise RuntimeError(
            "PageCacheService not initialized in app.state. "
            "This indicates the application lifespan startup didn't complete properly."
        )
    return page_service


async def get_principal(request: Request) -> Principal | None:
    """
    The requesting user, or None for anonymous visitors.

    Authentication belongs to the host application, which passes a
    ``principal_provider`` to ``create_app``.
    """
    provider = getattr(request.app.state, "principal_provider", None)
    if provider is None:
        return None
    return await provider(request)


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
PageServiceDep = Annotated[PageCacheService, Depends(get_page_service)]
PrincipalDep = Annotated[Principal | None, Depends(get_principal)]
