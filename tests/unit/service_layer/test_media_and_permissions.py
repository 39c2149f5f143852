"""
Unit Tests for image URLs and permission resolution
"""

import pytest

from directory_cache.pages.media import ImageUrlBuilder
from directory_cache.pages.models import Permissions, Principal
from directory_cache.pages.permissions import RolePermissionResolver
from directory_cache.pages.sources import ImageOptions, ImageUrlGenerator, PermissionResolver


@pytest.mark.unit
class TestImageUrlBuilder:
    def test_satisfies_protocol(self):
        assert isinstance(ImageUrlBuilder(), ImageUrlGenerator)

    def test_plain_api_path_without_cdn(self):
        assert ImageUrlBuilder().build("img-1") == "/api/images/img-1"

    def test_transform_parameters(self):
        url = ImageUrlBuilder().build("img-1", ImageOptions(width=300, height=200, quality=80, format="webp"))
        assert url == "/api/images/img-1?w=300&h=200&q=80&f=webp"

    def test_cdn_prefix_and_trailing_slash(self):
        assert ImageUrlBuilder("https://cdn.example.org/").build("img-1") == "https://cdn.example.org/api/images/img-1"

    def test_admin_pages_bypass_cdn(self):
        builder = ImageUrlBuilder("https://cdn.example.org")
        assert builder.build("img-1", pathname="/admin/persons/1") == "/api/images/img-1"

    @pytest.mark.asyncio
    async def test_generate_uses_record_id(self):
        url = await ImageUrlBuilder().generate({"id": "img-9"}, ImageOptions(width=10))
        assert url == "/api/images/img-9?w=10"

    def test_empty_options(self):
        assert ImageOptions().is_empty()
        assert not ImageOptions(quality=50).is_empty()


@pytest.mark.unit
class TestRolePermissionResolver:
    @pytest.fixture
    def resolver(self):
        return RolePermissionResolver()

    def test_satisfies_protocol(self, resolver):
        assert isinstance(resolver, PermissionResolver)

    @pytest.mark.asyncio
    async def test_anonymous(self, resolver):
        assert await resolver.resolve(None, "p1", "t1") == Permissions.anonymous()

    @pytest.mark.asyncio
    async def test_site_admin(self, resolver):
        permissions = await resolver.resolve(Principal(user_id="u", roles=frozenset({"site-admin"})), "p1", "t1")

        assert permissions.is_admin
        assert permissions.is_site_admin
        assert not permissions.is_town_admin

    @pytest.mark.asyncio
    async def test_town_admin_by_grant(self, resolver):
        principal = Principal(user_id="u", admin_town_ids=frozenset({"t1"}))

        assert (await resolver.resolve(principal, "p1", "t1")).is_town_admin
        assert not (await resolver.resolve(principal, "p1", "t2")).is_admin

    @pytest.mark.asyncio
    async def test_person_admin_by_grant(self, resolver):
        principal = Principal(user_id="u", admin_person_ids=frozenset({"p1"}))
        permissions = await resolver.resolve(principal, "p1", "t1")

        assert permissions.is_person_admin
        assert permissions.is_admin

    @pytest.mark.asyncio
    async def test_plain_user_has_no_flags(self, resolver):
        permissions = await resolver.resolve(Principal(user_id="u"), "p1", "t1")
        assert not permissions.is_admin
