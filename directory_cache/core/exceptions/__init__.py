"""
Exception Module

Structured exception hierarchy for the people directory page cache.

Module Structure:
-----------------
- **base.py**: DirectoryError base class + ConfigurationError
- **cache.py**: Cache tier exceptions (memory, Redis, serialization)
- **source.py**: Source-of-truth exceptions

Usage:
------
```python
from directory_cache.core.exceptions import CacheKeyError, SourceFetchError
```
"""

from directory_cache.core.exceptions.base import ConfigurationError, DirectoryError
from directory_cache.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
)
from directory_cache.core.exceptions.source import SourceFetchError

__all__ = [
    "DirectoryError",
    "ConfigurationError",
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "SourceFetchError",
]
