"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the people directory page cache.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers
- Type-safe enums for tier names and cache stages
- Key namespaces live here so no module invents its own
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Cache lookup stages used as the ``stage`` field of log events.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}

    The numbering follows the read-through path of a single page request:
    memory check, distributed check, memory backfill, source fetch and
    population of both tiers. Invalidation and lifecycle stages use an
    alphabetic prefix because they happen outside the request path.
    """

    # Read-through path (Sequential 1.0 - 5.0)
    MEMORY_LOOKUP = "1.0_MEMORY_LOOKUP"
    DISTRIBUTED_LOOKUP = "2.0_DISTRIBUTED_LOOKUP"
    MEMORY_BACKFILL = "2.1_MEMORY_BACKFILL"
    SOURCE_FETCH = "3.0_SOURCE_FETCH"
    TIER_POPULATION = "4.0_TIER_POPULATION"
    RESULT = "5.0_RESULT"

    # Outside the request path
    INVALIDATION = "I_INVALIDATION"
    LIFECYCLE = "LC_LIFECYCLE"
    EVICTION = "E_EVICTION"
    CLEANUP = "C_CLEANUP"
    RESET = "R_RESET"


# ============================================================================
# Cache Tiers
# ============================================================================


class CacheTier(str, Enum):
    """
    Levels of the cache hierarchy.

    MEMORY: in-process, size-bounded, per worker
    REDIS: shared distributed cache, server-side TTL
    """

    MEMORY = "memory"
    REDIS = "redis"


class CacheSource(str, Enum):
    """
    Where a page snapshot was served from.

    Observability only: callers never branch on it for correctness.
    """

    MEMORY = "memory"
    REDIS = "redis"
    DATABASE = "database"


class CacheEntity(str, Enum):
    """Cacheable page aggregates (first segment of every cache key)."""

    PERSON = "person"
    TOWN = "town"
    HOMEPAGE = "homepage"


# ============================================================================
# Memory Tier Sizing
# ============================================================================

# Fixed per-entry overhead added to the UTF-16 estimate of the payload
MEMORY_ENTRY_OVERHEAD_BYTES = 100

# Bytes per character in the size estimate (UTF-16 style accounting)
MEMORY_BYTES_PER_CHAR = 2

BYTES_PER_MB = 1024 * 1024

# ============================================================================
# Distributed Tier
# ============================================================================

# Namespace segment placed between the application prefix and cache keys:
#   {REDIS_KEY_PREFIX}:cache:{entity}:{scope...}:{version}
REDIS_NAMESPACE_CACHE = "cache"

# Keys deleted per round trip during a scoped reset
REDIS_RESET_BATCH_SIZE = 1000

# ============================================================================
# Statistics
# ============================================================================

# Per-tier cap on keys tracked in the stats snapshot; the oldest tracked key
# is dropped first. Tier totals keep counting past the cap.
STATS_MAX_TRACKED_KEYS = 10_000

# ============================================================================
# Page Aggregates
# ============================================================================

# Number of recently added people shown on the homepage
HOMEPAGE_RECENT_PERSONS_LIMIT = 6

# Homepage thumbnail transform
HOMEPAGE_THUMBNAIL_WIDTH = 300
HOMEPAGE_THUMBNAIL_HEIGHT = 300
HOMEPAGE_THUMBNAIL_QUALITY = 80

# Image type of a person's headline photo
PRIMARY_IMAGE_TYPE = "primary"

# Role names understood by the permission resolver
ROLE_SITE_ADMIN = "site-admin"
ROLE_TOWN_ADMIN = "town-admin"
ROLE_PERSON_ADMIN = "person-admin"

# ============================================================================
# HTTP Headers
# ============================================================================

HEADER_REQUEST_ID = "X-Request-ID"
HEADER_CACHE_SOURCE = "X-Cache-Source"
HEADER_CACHE_LATENCY = "X-Cache-Latency-Ms"
