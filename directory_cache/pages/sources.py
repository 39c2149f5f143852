"""
Collaborator Protocols

The page loaders depend on these seams, never on concrete services. The host
application supplies implementations (relational store, image service,
auth, geolocation, site configuration); tests supply fakes.

Architectural Decision: Protocol-based abstraction
- Loaders stay free of ORM and HTTP client code
- Any object with the right async methods satisfies a protocol
- Runtime checking with @runtime_checkable

Record shapes
-------------
Store methods return plain mappings with snake_case keys. Datetime and
Decimal values may be returned as-is; snapshot models convert them.

Image record (``ImageRecord``):
    id, storage_type, s3_key, caption, mime_type, size, width, height,
    created_at, updated_at

``find_person`` record:
    every PersonSnapshot scalar field, plus
    town: {id, name, slug, state, layout, theme}
    layout / theme: {id, name, ...} or None
    detention_facility: {id, name, city, state, ..., image: ImageRecord | None} or None
    images: [{image_type, sequence_number, image: ImageRecord}]   (type, then sequence order)
    comments: [comment fields]        (active, not hidden, newest first)
    stories: [story fields]           (active only)
    history: [history fields]         (visible only, newest first)

``find_town`` record:
    id, name, slug, state, layout, theme,
    persons: [{id, first_name, last_name, slug, last_seen_date, date_of_birth,
               story, created_at, detention_facility, comment_count,
               primary_image: ImageRecord | None}]   (active detained, newest first)

``list_towns_with_counts`` items:
    id, name, slug, state, detained_count              (active towns, name order)

``list_recent_persons`` items:
    id, first_name, last_name, slug, last_seen_date,
    town: {name, slug, state}, primary_image: ImageRecord | None
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

from directory_cache.pages.models import Permissions, Principal

ImageRecord = Mapping[str, Any]


@dataclass(frozen=True)
class ImageOptions:
    """Requested image transform."""

    width: int | None = None
    height: int | None = None
    quality: int | None = None
    format: Literal["jpeg", "webp", "png"] | None = None

    def is_empty(self) -> bool:
        return not (self.width or self.height or self.quality or self.format)


@runtime_checkable
class DirectoryStore(Protocol):
    """Relational source of truth for the page aggregates."""

    async def find_person(self, town_slug: str, person_slug: str) -> Mapping[str, Any] | None:
        """Active person in an active town, with every collection the page renders."""
        ...

    async def find_town(self, town_slug: str) -> Mapping[str, Any] | None:
        """Active town with its active detained people."""
        ...

    async def list_towns_with_counts(self) -> Sequence[Mapping[str, Any]]:
        ...

    async def list_recent_persons(self, limit: int) -> Sequence[Mapping[str, Any]]:
        ...

    async def count_detained(self) -> int:
        """Active detained people in active towns."""
        ...

    async def list_active_town_slugs(self) -> Sequence[str]:
        ...


@runtime_checkable
class ImageUrlGenerator(Protocol):
    """Turns an image reference into a URL for the page being rendered."""

    async def generate(
        self,
        image: ImageRecord,
        options: ImageOptions | None = None,
        pathname: str | None = None,
    ) -> str:
        ...


@runtime_checkable
class PermissionResolver(Protocol):
    """Role flags of a principal for one person page."""

    async def resolve(self, principal: Principal | None, person_id: str, town_id: str) -> Permissions:
        ...


@runtime_checkable
class GeolocationService(Protocol):
    """
    Location-bucketed support counts for a person.

    Returns a mapping with has_ip_addresses, message_location_count and
    support_location_count.
    """

    async def support_summary(self, person_id: str) -> Mapping[str, Any]:
        ...


@runtime_checkable
class SystemConfigProvider(Protocol):
    """Site-wide default layout and theme ({"layout": ..., "theme": ...})."""

    async def layout_theme_defaults(self) -> Mapping[str, Any]:
        ...
