"""
Cache key construction.

Every key has the shape ``{entity}:{scope...}:{version}``:

    person:{town_slug}:{person_slug}:v1
    town:{town_slug}:v1
    homepage:v1

Keys are built only here. Bumping CACHE_SCHEMA_VERSION makes every key
written under the old version unreachable, which is how a snapshot shape
change is rolled out without a flush.

Scope parts come straight from request paths, so building never fails:
'%' and ':' inside a part are percent-encoded, which keeps the segment
count fixed and distinct slugs on distinct keys.
"""

from directory_cache.core.config.constants import CacheEntity


class CacheKeyBuilder:
    """Deterministic, versioned cache keys for the page aggregates."""

    SEPARATOR = ":"

    def __init__(self, version: str = "v1"):
        self._version = version

    @property
    def version(self) -> str:
        return self._version

    @staticmethod
    def escape(part: str) -> str:
        """Percent-encode the characters that would break a key segment."""
        return part.replace("%", "%25").replace(CacheKeyBuilder.SEPARATOR, "%3A")

    def build(self, entity: CacheEntity | str, *scope: str) -> str:
        """Build a key from an entity and its scope parts."""
        entity_name = entity.value if isinstance(entity, CacheEntity) else entity
        return self.SEPARATOR.join([entity_name, *map(self.escape, scope), self._version])

    def person(self, town_slug: str, person_slug: str) -> str:
        return self.build(CacheEntity.PERSON, town_slug, person_slug)

    def town(self, town_slug: str) -> str:
        return self.build(CacheEntity.TOWN, town_slug)

    def homepage(self) -> str:
        return self.build(CacheEntity.HOMEPAGE)

    @staticmethod
    def entity_of(key: str) -> str:
        """Entity name of a key (its first segment)."""
        return key.split(CacheKeyBuilder.SEPARATOR, 1)[0]
