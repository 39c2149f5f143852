"""
Core Module

Foundational components: configuration, logging, exceptions and the cache
tier protocol.
"""

from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    ConfigurationError,
    DirectoryError,
    SourceFetchError,
)
from .interfaces import MISS, CacheTierBackend, Miss
from .logging import (
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    set_request_id,
    setup_logging,
)

__all__ = [
    "CacheConnectionError",
    "CacheError",
    "CacheKeyError",
    "CacheSerializationError",
    "ConfigurationError",
    "DirectoryError",
    "SourceFetchError",
    "MISS",
    "CacheTierBackend",
    "Miss",
    "clear_request_id",
    "get_logger",
    "get_request_id",
    "log_stage",
    "set_request_id",
    "setup_logging",
]
