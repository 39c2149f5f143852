"""
FastAPI Application Factory

Serves cached page data for the people directory. The relational store,
image service and auth layer belong to the host application and are passed
in to ``create_app``; this package only owns the caching around them.

Usage:
    app = create_app(store=PostgresDirectoryStore(pool), principal_provider=current_user)
    uvicorn.run(app)
"""

import uuid
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import redis.asyncio as redis
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from directory_cache.application.routes.health import router as health_router
from directory_cache.application.routes.pages import router as pages_router
from directory_cache.core.config.constants import HEADER_REQUEST_ID
from directory_cache.core.config.settings import Settings, get_settings
from directory_cache.core.exceptions import DirectoryError, SourceFetchError
from directory_cache.core.logging.logger import (
    clear_request_id,
    get_logger,
    get_request_id,
    set_request_id,
    setup_logging,
)
from directory_cache.infrastructure.cache.cache_manager import CacheManager
from directory_cache.pages.media import ImageUrlBuilder
from directory_cache.pages.models import Principal
from directory_cache.pages.service import PageCacheService
from directory_cache.pages.sources import (
    DirectoryStore,
    GeolocationService,
    ImageUrlGenerator,
    PermissionResolver,
    SystemConfigProvider,
)

logger = get_logger(__name__)

PrincipalProvider = Callable[[Request], Awaitable[Principal | None]]


@dataclass
class Collaborators:
    """Host-supplied services, kept on ``app.state`` until the lifespan wires them."""

    store: DirectoryStore
    image_urls: ImageUrlGenerator
    permissions: PermissionResolver | None = None
    geolocation: GeolocationService | None = None
    system_config: SystemConfigProvider | None = None
    redis_client: redis.Redis | None = None


# ============================================================================
# Application Lifespan
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle (startup and shutdown).

    Startup builds the CacheManager (connecting Redis when enabled) and the
    PageCacheService, and stores both in ``app.state`` for dependencies.py.
    """
    settings: Settings = app.state.settings
    collaborators: Collaborators = app.state.collaborators

    setup_logging(log_level=settings.logging.LOG_LEVEL, log_format=settings.logging.LOG_FORMAT)

    logger.info(
        "Starting people directory page service",
        environment=settings.app.ENVIRONMENT,
        version=settings.app.APP_VERSION,
    )

    cache_manager = CacheManager(settings=settings, redis_client=collaborators.redis_client)
    try:
        await cache_manager.initialize()
        app.state.cache_manager = cache_manager
        app.state.page_service = PageCacheService(
            cache_manager,
            collaborators.store,
            collaborators.image_urls,
            permissions=collaborators.permissions,
            geolocation=collaborators.geolocation,
            system_config=collaborators.system_config,
        )
        logger.info("Application startup complete")

        yield

    finally:
        logger.info("Shutting down application")
        await cache_manager.shutdown()
        logger.info("Application shutdown complete")


# ============================================================================
# Application Factory
# ============================================================================


def create_app(
    store: DirectoryStore,
    image_urls: ImageUrlGenerator | None = None,
    permissions: PermissionResolver | None = None,
    geolocation: GeolocationService | None = None,
    system_config: SystemConfigProvider | None = None,
    settings: Settings | None = None,
    redis_client: redis.Redis | None = None,
    principal_provider: PrincipalProvider | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store: Relational source of truth
        image_urls: Image URL generator (ImageUrlBuilder over IMAGE_CDN_URL when omitted)
        permissions: Permission resolver (role-based when omitted)
        geolocation: Support map counts service
        system_config: Site-wide layout/theme defaults
        settings: Settings (global settings when omitted)
        redis_client: Pre-built redis.asyncio client for the distributed tier
        principal_provider: Async callable returning the requesting user

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        description="Tiered page cache for the people directory",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.principal_provider = principal_provider
    app.state.collaborators = Collaborators(
        store=store,
        image_urls=image_urls or ImageUrlBuilder(settings.app.IMAGE_CDN_URL),
        permissions=permissions,
        geolocation=geolocation,
        system_config=system_config,
        redis_client=redis_client,
    )

    # Page and cache routes are versioned under API_BASE_PATH (default /api/v1);
    # health and metrics stay at the root where probes and scrapers expect them.
    app.include_router(pages_router, prefix=settings.app.API_BASE_PATH)
    app.include_router(health_router)

    app.middleware("http")(request_id_middleware)
    app.add_exception_handler(SourceFetchError, source_exception_handler)
    app.add_exception_handler(DirectoryError, directory_exception_handler)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app.APP_NAME,
            "version": settings.app.APP_VERSION,
            "environment": settings.app.ENVIRONMENT,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# ============================================================================
# Middleware
# ============================================================================


async def request_id_middleware(request: Request, call_next):
    """
    Inject a request ID into every request for log correlation.
    """
    request_id = request.headers.get(HEADER_REQUEST_ID) or str(uuid.uuid4())
    set_request_id(request_id)

    try:
        response = await call_next(request)
        response.headers[HEADER_REQUEST_ID] = request_id
        return response

    finally:
        clear_request_id()


# ============================================================================
# Exception Handlers
# ============================================================================


async def source_exception_handler(request: Request, exc: SourceFetchError):
    """The store could not answer; nothing was cached for this request."""
    request_id = exc.request_id or get_request_id()
    logger.error(
        f"Source fetch failed: {exc.message}",
        error_type=type(exc).__name__,
        request_id=request_id,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=503,
        content={**exc.to_dict(), "request_id": request_id},
        headers={HEADER_REQUEST_ID: request_id or ""},
    )


async def directory_exception_handler(request: Request, exc: DirectoryError):
    """Handle remaining directory cache exceptions."""
    request_id = exc.request_id or get_request_id()
    logger.error(
        f"Directory cache exception: {exc.message}",
        error_type=type(exc).__name__,
        request_id=request_id,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content={**exc.to_dict(), "request_id": request_id},
        headers={HEADER_REQUEST_ID: request_id or ""},
    )
