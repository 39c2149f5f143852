"""
Page Data Routes

JSON page data for the rendering layer, served through the page cache.

Every page response carries two observability headers:
- X-Cache-Source: memory | redis | database
- X-Cache-Latency-Ms: wall time of the cached read

A page whose entity does not exist is a 404. That outcome is cached like any
other, so repeated requests for a bad slug do not reach the database.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response

from directory_cache.application.dependencies import PageServiceDep, PrincipalDep
from directory_cache.core.config.constants import HEADER_CACHE_LATENCY, HEADER_CACHE_SOURCE
from directory_cache.infrastructure.cache.cache_manager import CacheResult
from directory_cache.pages.models import HomepageData, PersonPageData, TownPageData

router = APIRouter(tags=["Pages"])


def _with_cache_headers(response: Response, result: CacheResult[Any]) -> None:
    response.headers[HEADER_CACHE_SOURCE] = result.source.value
    response.headers[HEADER_CACHE_LATENCY] = f"{result.latency_ms:.3f}"


@router.get("/pages/home", response_model=HomepageData)
async def homepage(
    response: Response,
    pages: PageServiceDep,
    refresh: bool = Query(False, description="Bypass the cache and reload from the store"),
):
    result = await pages.get_cached_homepage_data(force_refresh=refresh)
    _with_cache_headers(response, result)
    return result.data


@router.get("/pages/towns/{town_slug}", response_model=TownPageData)
async def town_page(
    town_slug: str,
    response: Response,
    pages: PageServiceDep,
    refresh: bool = Query(False, description="Bypass the cache and reload from the store"),
):
    result = await pages.get_cached_town_data(town_slug, force_refresh=refresh)
    if result.data is None:
        raise HTTPException(status_code=404, detail=f"Town '{town_slug}' not found")
    _with_cache_headers(response, result)
    return result.data


@router.get("/pages/towns/{town_slug}/people/{person_slug}", response_model=PersonPageData)
async def person_page(
    town_slug: str,
    person_slug: str,
    response: Response,
    pages: PageServiceDep,
    principal: PrincipalDep,
    refresh: bool = Query(False, description="Bypass the cache and reload from the store"),
):
    result = await pages.get_cached_person_data(
        town_slug, person_slug, principal=principal, force_refresh=refresh
    )
    if result.data is None:
        raise HTTPException(
            status_code=404, detail=f"Person '{person_slug}' not found in '{town_slug}'"
        )
    _with_cache_headers(response, result)
    return result.data


@router.get("/cache/stats", tags=["Cache"])
async def cache_stats(pages: PageServiceDep) -> dict[str, Any]:
    """
    Hit/miss counters per tier and per key, source query counts and memory usage.

    Consumed by the operational dashboard.
    """
    return pages.get_stats()
