"""
Cache-Related Exceptions

All exceptions raised by the memory and distributed cache tiers. The cache
orchestrator catches every one of them and treats the failure as a miss.
"""

from directory_cache.core.exceptions.base import DirectoryError


class CacheError(DirectoryError):
    """Base exception for cache-related errors."""
    pass


class CacheConnectionError(CacheError):
    """
    Raised when unable to connect to the distributed cache (Redis).

    Common causes:
    - Redis server is down
    - Incorrect host/port configuration
    - Authentication failure
    """
    pass


class CacheKeyError(CacheError):
    """
    Raised when a cache key operation fails or a key cannot be built.

    Common causes:
    - Empty or malformed key segment
    - Redis command error
    - Operation timeout
    """
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be encoded to or decoded from JSON."""
    pass
