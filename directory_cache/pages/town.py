"""
Town Page Aggregate

One store query for an active town and its active detained people (newest
first). Each person gets the URL of their primary image, rendered for the
town page path, plus a facility summary and their active comment count.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from directory_cache.pages.models import (
    FacilitySummary,
    LayoutSnapshot,
    ThemeSnapshot,
    TownPageData,
    TownPagePerson,
    build_optional,
    build_snapshot,
)
from directory_cache.pages.sources import DirectoryStore, ImageUrlGenerator


class TownPageLoader:
    """Loads and serializes town pages from the directory store."""

    def __init__(self, store: DirectoryStore, image_urls: ImageUrlGenerator):
        self._store = store
        self._image_urls = image_urls

    async def load(self, town_slug: str) -> TownPageData | None:
        """
        Build the snapshot for one town page.

        Returns:
            TownPageData, or None when no active town matches
        """
        record = await self._store.find_town(town_slug)
        if record is None:
            return None

        pathname = f"/{town_slug}"
        persons = await asyncio.gather(
            *(self._person(person, pathname) for person in record.get("persons") or ())
        )

        return build_snapshot(
            TownPageData,
            record,
            layout=build_optional(LayoutSnapshot, record.get("layout")),
            theme=build_optional(ThemeSnapshot, record.get("theme")),
            persons=list(persons),
        )

    async def _person(self, person: Mapping[str, Any], pathname: str) -> TownPagePerson:
        image = person.get("primary_image")
        image_url = await self._image_urls.generate(image, pathname=pathname) if image else None
        return build_snapshot(
            TownPagePerson,
            person,
            detention_facility=build_optional(FacilitySummary, person.get("detention_facility")),
            image_url=image_url,
        )
