"""
Cache Tier Protocol

This module defines the contract shared by the memory and distributed cache
tiers, plus the MISS sentinel both of them return.

Architectural Decision: Protocol-based abstraction
- The orchestrator depends on the protocol, not on a concrete tier
- Tests can substitute failing or slow tiers without patching
- Runtime checking with @runtime_checkable

Why a sentinel instead of None:
``None`` is a legitimate cached value. A person page lookup for an unknown
slug caches ``None`` so repeated lookups do not hit the database again.
``MISS`` is the only value that means "nothing stored under this key".
"""

from enum import Enum
from typing import Any, Protocol, runtime_checkable


class Miss(Enum):
    """Single-member enum used as the cache miss sentinel."""

    MISS = "miss"

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


MISS = Miss.MISS


@runtime_checkable
class CacheTierBackend(Protocol):
    """
    Protocol implemented by every cache tier.

    Implementations:
    - MemoryCache: in-process, size-bounded, lazy expiry
    - DisabledMemoryCache: null object used when the memory tier is off
    - DistributedCache: Redis-backed, server-side expiry
    """

    async def get(self, key: str) -> Any | Miss:
        """
        Get a value from the tier.

        Returns:
            The stored value (possibly None) or MISS
        """
        ...

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store a value under key.

        Args:
            key: Cache key
            value: JSON-serializable value (None allowed)
            ttl: Time-to-live in seconds; the tier default when omitted
        """
        ...

    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are not an error."""
        ...

    async def reset(self) -> int:
        """
        Remove every entry this tier owns.

        Returns:
            int: Number of entries removed
        """
        ...
