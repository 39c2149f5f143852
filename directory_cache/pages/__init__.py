"""
Page Aggregates

Fetch-and-serialize units for the person, town and homepage pages, their
snapshot models, and the PageCacheService that serves them through the cache.
"""

from directory_cache.pages.homepage import HomepageLoader
from directory_cache.pages.media import ImageUrlBuilder
from directory_cache.pages.models import (
    HomepageData,
    PersonPageData,
    PersonPageSnapshot,
    Principal,
    TownPageData,
)
from directory_cache.pages.permissions import RolePermissionResolver
from directory_cache.pages.person import PersonPageLoader
from directory_cache.pages.service import PageCacheService
from directory_cache.pages.town import TownPageLoader

__all__ = [
    "HomepageData",
    "HomepageLoader",
    "ImageUrlBuilder",
    "PageCacheService",
    "PersonPageData",
    "PersonPageLoader",
    "PersonPageSnapshot",
    "Principal",
    "RolePermissionResolver",
    "TownPageData",
    "TownPageLoader",
]
