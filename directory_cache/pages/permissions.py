"""
Role-based permission resolution for person pages.

A principal is an admin of a person page when it holds the matching
site-wide role or has been granted admin access to that town or person.
"""

from directory_cache.core.config.constants import ROLE_PERSON_ADMIN, ROLE_SITE_ADMIN, ROLE_TOWN_ADMIN
from directory_cache.pages.models import Permissions, Principal


class RolePermissionResolver:
    """Derives permission flags from the principal alone (no store lookups)."""

    async def resolve(self, principal: Principal | None, person_id: str, town_id: str) -> Permissions:
        if principal is None:
            return Permissions.anonymous()

        is_site_admin = ROLE_SITE_ADMIN in principal.roles
        is_town_admin = ROLE_TOWN_ADMIN in principal.roles or town_id in principal.admin_town_ids
        is_person_admin = (
            ROLE_PERSON_ADMIN in principal.roles or person_id in principal.admin_person_ids
        )

        return Permissions(
            is_admin=is_site_admin or is_town_admin or is_person_admin,
            is_site_admin=is_site_admin,
            is_town_admin=is_town_admin,
            is_person_admin=is_person_admin,
        )
