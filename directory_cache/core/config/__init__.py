"""
Configuration Module

This module provides centralized, type-safe configuration management
for the people directory page cache.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: System-wide constants, enums, and magic numbers

Usage:
------
```python
from directory_cache.core.config import get_settings
from directory_cache.core.config.constants import Stage, CacheTier

settings = get_settings()

memory_ttl = settings.cache.CACHE_MEMORY_TTL
redis_host = settings.redis.REDIS_HOST

stage = Stage.MEMORY_LOOKUP  # "1.0_MEMORY_LOOKUP"
```

Environment Variables:
---------------------
Configuration is loaded from environment variables or `.env` file:

```bash
# Memory tier
CACHE_MEMORY_ENABLE=true
CACHE_MEMORY_TTL=300
CACHE_MEMORY_MAX_SIZE_MB=100

# Distributed tier
CACHE_REDIS_ENABLE=true
CACHE_REDIS_TTL=3600
REDIS_HOST=localhost
REDIS_PORT=6379

# Logging
LOG_LEVEL=INFO
LOG_FORMAT=json
```

Testing:
-------
```python
import os
from directory_cache.core.config import reload_settings

os.environ["CACHE_MEMORY_ENABLE"] = "true"
settings = reload_settings()
assert settings.cache.CACHE_MEMORY_ENABLE is True
```
"""

from directory_cache.core.config.constants import (
    HEADER_CACHE_LATENCY,
    HEADER_CACHE_SOURCE,
    HEADER_REQUEST_ID,
    CacheEntity,
    CacheSource,
    CacheTier,
    Stage,
)
from directory_cache.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "reload_settings",
    # Enums
    "Stage",
    "CacheTier",
    "CacheSource",
    "CacheEntity",
    # Headers
    "HEADER_REQUEST_ID",
    "HEADER_CACHE_SOURCE",
    "HEADER_CACHE_LATENCY",
]
