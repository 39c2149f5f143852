"""
Person Page Aggregate

Fetch-and-serialize for one person page:

1. One store query for the person and every collection the page renders
   (town with layout/theme, detention facility with its image, images,
   comments, stories, visible history)
2. Concurrently:
   - site-wide layout/theme defaults
   - serialization into a PersonSnapshot, generating a URL for every image
   - support map counts from the geolocation service

The result is a PersonPageSnapshot: identical for every visitor and safe to
cache. Per-visitor permission flags are added later by the page service.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

from directory_cache.core.config.constants import Stage
from directory_cache.core.logging.logger import get_logger
from directory_cache.pages.models import (
    CommentSnapshot,
    DetentionFacilitySnapshot,
    HistoryEntrySnapshot,
    LayoutSnapshot,
    PersonImageSnapshot,
    PersonPageSnapshot,
    PersonSnapshot,
    StorySnapshot,
    SupportMapMetadata,
    SystemDefaults,
    ThemeSnapshot,
    TownSnapshot,
    build_optional,
    build_snapshot,
)
from directory_cache.pages.sources import (
    DirectoryStore,
    GeolocationService,
    ImageUrlGenerator,
    SystemConfigProvider,
)

logger = get_logger(__name__)


class PersonPageLoader:
    """
    Loads and serializes person pages from the directory store.

    Args:
        store: Relational source of truth
        image_urls: Image URL generator
        geolocation: Support map counts (zero counts when omitted)
        system_config: Site-wide layout/theme defaults (empty when omitted)
    """

    def __init__(
        self,
        store: DirectoryStore,
        image_urls: ImageUrlGenerator,
        geolocation: GeolocationService | None = None,
        system_config: SystemConfigProvider | None = None,
    ):
        self._store = store
        self._image_urls = image_urls
        self._geolocation = geolocation
        self._system_config = system_config

    async def load(self, town_slug: str, person_slug: str) -> PersonPageSnapshot | None:
        """
        Build the snapshot for one person page.

        Returns:
            PersonPageSnapshot, or None when no active person matches

        Raises:
            Whatever the store raises
        """
        record = await self._store.find_person(town_slug, person_slug)
        if record is None:
            logger.debug(
                "Person not found",
                stage=Stage.SOURCE_FETCH.value,
                town_slug=town_slug,
                person_slug=person_slug,
            )
            return None

        system_defaults, person, support_map = await asyncio.gather(
            self._system_defaults(),
            self.serialize(record, pathname=f"/{town_slug}/{person_slug}"),
            self._support_map(record["id"]),
        )

        return PersonPageSnapshot(
            person=person,
            system_defaults=system_defaults,
            support_map_metadata=support_map,
        )

    async def serialize(self, record: Mapping[str, Any], pathname: str) -> PersonSnapshot:
        """Flatten a person record, generating image URLs for ``pathname``."""
        images, facility = await asyncio.gather(
            asyncio.gather(*(self._image(item, pathname) for item in record.get("images") or ())),
            self._facility(record.get("detention_facility"), pathname),
        )

        town = record["town"]
        return build_snapshot(
            PersonSnapshot,
            record,
            town=build_snapshot(
                TownSnapshot,
                town,
                layout=build_optional(LayoutSnapshot, town.get("layout")),
                theme=build_optional(ThemeSnapshot, town.get("theme")),
            ),
            layout=build_optional(LayoutSnapshot, record.get("layout")),
            theme=build_optional(ThemeSnapshot, record.get("theme")),
            detention_facility=facility,
            images=list(images),
            comments=[build_snapshot(CommentSnapshot, c) for c in record.get("comments") or ()],
            stories=[build_snapshot(StorySnapshot, s) for s in record.get("stories") or ()],
            history=[build_snapshot(HistoryEntrySnapshot, h) for h in record.get("history") or ()],
        )

    async def _image(self, item: Mapping[str, Any], pathname: str) -> PersonImageSnapshot:
        image = item["image"]
        return build_snapshot(
            PersonImageSnapshot,
            image,
            image_type=item["image_type"],
            sequence_number=item["sequence_number"],
            image_url=await self._image_urls.generate(image, pathname=pathname),
        )

    async def _facility(
        self, facility: Mapping[str, Any] | None, pathname: str
    ) -> DetentionFacilitySnapshot | None:
        if facility is None:
            return None
        image = facility.get("image")
        image_url = await self._image_urls.generate(image, pathname=pathname) if image else None
        return build_snapshot(DetentionFacilitySnapshot, facility, image_url=image_url)

    async def _system_defaults(self) -> SystemDefaults:
        if self._system_config is None:
            return SystemDefaults()
        return build_snapshot(SystemDefaults, await self._system_config.layout_theme_defaults())

    async def _support_map(self, person_id: str) -> SupportMapMetadata:
        """Support counts; any geolocation failure yields zero counts."""
        if self._geolocation is None:
            return SupportMapMetadata()
        try:
            summary = await self._geolocation.support_summary(person_id)
            return build_snapshot(SupportMapMetadata, summary)
        except Exception as e:
            logger.warning(
                "Support map metadata unavailable, using zero counts",
                stage=Stage.SOURCE_FETCH.value,
                person_id=person_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return SupportMapMetadata()
