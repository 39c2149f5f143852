"""
Homepage Aggregate

Three independent store queries run concurrently:
- active towns with their detained counts, in name order
- the six most recently added detained people, each with a 300x300
  thumbnail URL
- the total number of detained people

The homepage always exists, so the loader never returns None.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from directory_cache.core.config.constants import (
    HOMEPAGE_RECENT_PERSONS_LIMIT,
    HOMEPAGE_THUMBNAIL_HEIGHT,
    HOMEPAGE_THUMBNAIL_QUALITY,
    HOMEPAGE_THUMBNAIL_WIDTH,
)
from directory_cache.pages.models import (
    HomepageData,
    HomepagePerson,
    HomepageTown,
    TownRef,
    build_snapshot,
)
from directory_cache.pages.sources import DirectoryStore, ImageOptions, ImageUrlGenerator

THUMBNAIL = ImageOptions(
    width=HOMEPAGE_THUMBNAIL_WIDTH,
    height=HOMEPAGE_THUMBNAIL_HEIGHT,
    quality=HOMEPAGE_THUMBNAIL_QUALITY,
)


class HomepageLoader:
    """Loads and serializes the public homepage summary."""

    def __init__(self, store: DirectoryStore, image_urls: ImageUrlGenerator):
        self._store = store
        self._image_urls = image_urls

    async def load(self) -> HomepageData:
        towns, recent, total_detained = await asyncio.gather(
            self._store.list_towns_with_counts(),
            self._store.list_recent_persons(HOMEPAGE_RECENT_PERSONS_LIMIT),
            self._store.count_detained(),
        )

        recent_persons = await asyncio.gather(*(self._person(person) for person in recent))

        return HomepageData(
            towns=[build_snapshot(HomepageTown, town) for town in towns],
            recent_persons=list(recent_persons),
            total_detained=total_detained,
        )

    async def _person(self, person: Mapping[str, Any]) -> HomepagePerson:
        image = person.get("primary_image")
        image_url = (
            await self._image_urls.generate(image, THUMBNAIL, pathname="/") if image else None
        )
        return build_snapshot(
            HomepagePerson,
            person,
            town=build_snapshot(TownRef, person["town"]),
            image_url=image_url,
        )
