"""
Page Snapshot Models

Flat, JSON-safe snapshots of the person, town and homepage aggregates. These
are what the cache tiers store.

Rules every snapshot follows:
- Timestamps are ISO-8601 strings (datetimes from the store are converted
  on construction)
- Money amounts are decimal strings
- No binary data: images are referenced by URL only
- Frozen and ``extra="forbid"``: a cached payload written by an older
  snapshot shape fails validation and is treated as a cache miss

Permission flags are never part of a cached snapshot. They are resolved for
each request and attached in PersonPageData.
"""

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _to_iso(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _to_decimal_string(value: Any) -> Any:
    if isinstance(value, (Decimal, int, float)) and not isinstance(value, bool):
        return str(value)
    return value


IsoDateTime = Annotated[str, BeforeValidator(_to_iso)]
DecimalString = Annotated[str, BeforeValidator(_to_decimal_string)]


class SnapshotModel(BaseModel):
    """Base for every cached snapshot."""

    model_config = ConfigDict(frozen=True, extra="forbid")


# ============================================================================
# Shared pieces
# ============================================================================


class LayoutSnapshot(SnapshotModel):
    id: str
    name: str
    template: str | None = None


class ThemeSnapshot(SnapshotModel):
    id: str
    name: str
    colors: dict[str, str] | None = None
    css_vars: str | None = None


class SystemDefaults(SnapshotModel):
    """Site-wide default layout and theme names."""

    layout: str | None = None
    theme: str | None = None


class SupportMapMetadata(SnapshotModel):
    """Location-bucketed support counts shown on a person page."""

    has_ip_addresses: bool = False
    message_location_count: int = 0
    support_location_count: int = 0


class FacilitySummary(SnapshotModel):
    id: str
    name: str
    city: str
    state: str


# ============================================================================
# Person page
# ============================================================================


class TownSnapshot(SnapshotModel):
    id: str
    name: str
    slug: str
    state: str
    layout: LayoutSnapshot | None = None
    theme: ThemeSnapshot | None = None


class DetentionFacilitySnapshot(SnapshotModel):
    id: str
    name: str
    city: str
    state: str
    address: str | None = None
    zip_code: str | None = None
    phone: str | None = None
    facility_type: str | None = None
    image_url: str | None = None
    created_at: IsoDateTime
    updated_at: IsoDateTime


class PersonImageSnapshot(SnapshotModel):
    id: str
    image_type: str
    sequence_number: int
    caption: str | None = None
    mime_type: str
    size: int
    width: int | None = None
    height: int | None = None
    created_at: IsoDateTime
    updated_at: IsoDateTime
    image_url: str


class CommentSnapshot(SnapshotModel):
    """
    A public supporter comment.

    Commenter contact details (email, phone, street address) and moderator
    notes are not part of the public snapshot.
    """

    id: str
    content: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    occupation: str | None = None
    birthdate: IsoDateTime | None = None
    city: str | None = None
    state: str | None = None
    show_occupation: bool = False
    show_birthdate: bool = False
    show_comment: bool = True
    show_city_state: bool = False
    wants_to_help_more: bool = False
    display_name_only: bool = False
    requires_family_approval: bool = False
    privacy_required_do_not_show_publicly: bool = False
    is_approved: bool = False
    type: str
    visibility: str
    created_at: IsoDateTime
    updated_at: IsoDateTime
    approved_at: IsoDateTime | None = None


class StorySnapshot(SnapshotModel):
    id: str
    language: str
    story_type: str
    content: str
    created_at: IsoDateTime
    updated_at: IsoDateTime


class HistoryEntrySnapshot(SnapshotModel):
    id: str
    description: str
    date: IsoDateTime
    created_by_username: str
    created_at: IsoDateTime
    updated_at: IsoDateTime


class PersonSnapshot(SnapshotModel):
    """Everything the person page renders about one person. SSNs are never cached."""

    id: str
    slug: str
    town_id: str
    first_name: str
    middle_name: str | None = None
    last_name: str
    alien_id_number: str | None = None
    date_of_birth: IsoDateTime | None = None
    place_of_birth: str | None = None
    height: str | None = None
    weight: str | None = None
    eye_color: str | None = None
    hair_color: str | None = None
    last_known_address: str | None = None
    current_address: str | None = None
    phone_number: str | None = None
    email_address: str | None = None
    story: str | None = None
    detention_story: str | None = None
    family_message: str | None = None
    last_seen_date: IsoDateTime | None = None
    last_seen_location: str | None = None
    is_found: bool = False
    status: str
    detention_date: IsoDateTime | None = None
    last_heard_from_date: IsoDateTime | None = None
    notes_from_last_contact: str | None = None
    release_date: IsoDateTime | None = None
    detention_status: str | None = None
    case_number: str | None = None
    bond_amount: DecimalString | None = None
    bond_status: str | None = None
    represented_by_lawyer: bool = False
    represented_by_notes: str | None = None
    legal_rep_name: str | None = None
    legal_rep_phone: str | None = None
    legal_rep_email: str | None = None
    legal_rep_firm: str | None = None
    next_court_date: IsoDateTime | None = None
    court_location: str | None = None
    international_address: str | None = None
    country_of_origin: str | None = None
    show_detention_info: bool = True
    show_last_heard_from: bool = True
    show_detention_date: bool = True
    show_community_support: bool = True
    created_at: IsoDateTime
    updated_at: IsoDateTime

    town: TownSnapshot
    layout: LayoutSnapshot | None = None
    theme: ThemeSnapshot | None = None
    detention_facility: DetentionFacilitySnapshot | None = None
    images: list[PersonImageSnapshot] = Field(default_factory=list)
    comments: list[CommentSnapshot] = Field(default_factory=list)
    stories: list[StorySnapshot] = Field(default_factory=list)
    history: list[HistoryEntrySnapshot] = Field(default_factory=list)


class PersonPageSnapshot(SnapshotModel):
    """Cached part of a person page (identical for every visitor)."""

    person: PersonSnapshot
    system_defaults: SystemDefaults
    support_map_metadata: SupportMapMetadata


class Permissions(SnapshotModel):
    """Role flags of the requesting principal for one person page."""

    is_admin: bool = False
    is_site_admin: bool = False
    is_town_admin: bool = False
    is_person_admin: bool = False

    @classmethod
    def anonymous(cls) -> "Permissions":
        return cls()


class PersonPageData(SnapshotModel):
    """A person page as served: the cached snapshot plus per-request permissions."""

    person: PersonSnapshot
    system_defaults: SystemDefaults
    support_map_metadata: SupportMapMetadata
    permissions: Permissions

    @classmethod
    def from_snapshot(cls, snapshot: PersonPageSnapshot, permissions: Permissions) -> "PersonPageData":
        return cls(
            person=snapshot.person,
            system_defaults=snapshot.system_defaults,
            support_map_metadata=snapshot.support_map_metadata,
            permissions=permissions,
        )


class Principal(BaseModel):
    """
    The authenticated user behind a request, as supplied by the host's auth layer.

    Attributes:
        user_id: Stable user identifier
        roles: Role names held site-wide (e.g. "site-admin")
        admin_town_ids: Towns the user has admin access to
        admin_person_ids: People the user has admin access to
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    roles: frozenset[str] = frozenset()
    admin_town_ids: frozenset[str] = frozenset()
    admin_person_ids: frozenset[str] = frozenset()


# ============================================================================
# Town page
# ============================================================================


class TownPagePerson(SnapshotModel):
    id: str
    first_name: str
    last_name: str
    slug: str
    last_seen_date: IsoDateTime | None = None
    date_of_birth: IsoDateTime | None = None
    story: str | None = None
    created_at: IsoDateTime
    detention_facility: FacilitySummary | None = None
    comment_count: int = 0
    image_url: str | None = None


class TownPageData(SnapshotModel):
    id: str
    name: str
    slug: str
    state: str
    layout: LayoutSnapshot | None = None
    theme: ThemeSnapshot | None = None
    persons: list[TownPagePerson] = Field(default_factory=list)


# ============================================================================
# Homepage
# ============================================================================


class HomepageTown(SnapshotModel):
    id: str
    name: str
    slug: str
    state: str
    detained_count: int


class TownRef(SnapshotModel):
    name: str
    slug: str
    state: str


class HomepagePerson(SnapshotModel):
    id: str
    first_name: str
    last_name: str
    slug: str
    last_seen_date: IsoDateTime | None = None
    town: TownRef
    image_url: str | None = None


class HomepageData(SnapshotModel):
    towns: list[HomepageTown] = Field(default_factory=list)
    recent_persons: list[HomepagePerson] = Field(default_factory=list)
    total_detained: int = 0


# ============================================================================
# Construction from store records
# ============================================================================


def build_snapshot(model: type[SnapshotModel], record: Mapping[str, Any], **overrides: Any) -> Any:
    """
    Build a snapshot from a store record, taking only the fields the model declares.

    Store records may carry more than a page needs (internal ids, sensitive
    columns); anything the model does not declare is left behind. Nested
    snapshots are passed in ``overrides`` already built.
    """
    fields = {
        name: record[name]
        for name in model.model_fields
        if name in record and name not in overrides
    }
    fields.update(overrides)
    return model.model_validate(fields)


def build_optional(model: type[SnapshotModel], record: Mapping[str, Any] | None) -> Any:
    return None if record is None else build_snapshot(model, record)
