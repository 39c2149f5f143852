#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
people directory page cache. All configuration is centralized here to ensure
consistency across modules.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- IDE autocomplete for all settings
- Easy testing with override mechanisms
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from directory_cache.core.config.constants import BYTES_PER_MB, REDIS_RESET_BATCH_SIZE


class RedisSettings(BaseSettings):
    """
    Redis connection configuration for the distributed cache tier.

    Architectural Decision: Connection pooling for performance
    - One pool per process, shared by every cache call
    - Socket timeouts bound how long a slow server can hold a request
    - Startup connection retried a few times, then the tier is treated as absent
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_CONNECT_RETRIES: int = Field(default=3, description="Connection attempts at startup")
    REDIS_KEY_PREFIX: str = Field(default="people-directory", description="Namespace prefix for every key")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Configuration of both cache tiers and the read-through orchestrator.

    TTLs are seconds. The memory budget is expressed in megabytes and may be
    fractional; 0 means the memory tier is unbounded.
    """

    CACHE_MEMORY_ENABLE: bool = Field(default=False, description="Enable the in-process tier")
    CACHE_MEMORY_TTL: float = Field(default=300, description="Memory tier TTL (5 minutes)")
    CACHE_MEMORY_MAX_SIZE_MB: float = Field(default=100, description="Memory tier byte budget in MB")
    CACHE_MEMORY_CLEANUP_ENABLED: bool = Field(default=False, description="Sweep expired entries periodically")
    CACHE_MEMORY_CLEANUP_INTERVAL_MS: int = Field(default=60000, description="Sweep interval in milliseconds")

    CACHE_REDIS_ENABLE: bool = Field(default=False, description="Enable the distributed tier")
    CACHE_REDIS_TTL: int = Field(default=3600, description="Distributed tier TTL (1 hour)")

    CACHE_SCHEMA_VERSION: str = Field(default="v1", description="Version suffix of every cache key")
    CACHE_TIER_TIMEOUT: float = Field(default=0.5, description="Upper bound for one tier call in seconds")
    CACHE_RESET_BATCH_SIZE: int = Field(default=REDIS_RESET_BATCH_SIZE, description="Keys deleted per batch on reset")
    CACHE_REQUEST_TRACKING: bool = Field(default=False, description="Verbose per-request cache logging")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)

    @property
    def memory_max_size_bytes(self) -> int:
        """Memory budget converted to bytes."""
        return int(self.CACHE_MEMORY_MAX_SIZE_MB * BYTES_PER_MB)

    @property
    def memory_cleanup_interval(self) -> float:
        """Cleanup interval in seconds."""
        return self.CACHE_MEMORY_CLEANUP_INTERVAL_MS / 1000


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """General application settings."""

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="People Directory Pages", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix of the page and cache routes")
    IMAGE_CDN_URL: str | None = Field(default=None, description="CDN origin placed in front of image URLs")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    Usage:
        from directory_cache.core.config.settings import get_settings

        settings = get_settings()
        ttl = settings.cache.CACHE_MEMORY_TTL
        host = settings.redis.REDIS_HOST

    The flat fields are what the environment fills in; the nested properties
    give each component a focused view of its own section.
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum pooled connections")
    REDIS_SOCKET_TIMEOUT: float = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: float = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_CONNECT_RETRIES: int = Field(default=3, description="Connection attempts at startup")
    REDIS_KEY_PREFIX: str = Field(default="people-directory", description="Namespace prefix for every key")

    # Cache settings
    CACHE_MEMORY_ENABLE: bool = Field(default=False, description="Enable the in-process tier")
    CACHE_MEMORY_TTL: float = Field(default=300, description="Memory tier TTL (5 minutes)")
    CACHE_MEMORY_MAX_SIZE_MB: float = Field(default=100, description="Memory tier byte budget in MB")
    CACHE_MEMORY_CLEANUP_ENABLED: bool = Field(default=False, description="Sweep expired entries periodically")
    CACHE_MEMORY_CLEANUP_INTERVAL_MS: int = Field(default=60000, description="Sweep interval in milliseconds")
    CACHE_REDIS_ENABLE: bool = Field(default=False, description="Enable the distributed tier")
    CACHE_REDIS_TTL: int = Field(default=3600, description="Distributed tier TTL (1 hour)")
    CACHE_SCHEMA_VERSION: str = Field(default="v1", description="Version suffix of every cache key")
    CACHE_TIER_TIMEOUT: float = Field(default=0.5, description="Upper bound for one tier call in seconds")
    CACHE_RESET_BATCH_SIZE: int = Field(default=REDIS_RESET_BATCH_SIZE, description="Keys deleted per batch on reset")
    CACHE_REQUEST_TRACKING: bool = Field(default=False, description="Verbose per-request cache logging")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="People Directory Pages", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    API_BASE_PATH: str = Field(default="/api/v1", description="Prefix of the page and cache routes")
    IMAGE_CDN_URL: str | None = Field(default=None, description="CDN origin placed in front of image URLs")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("CACHE_MEMORY_MAX_SIZE_MB")
    @classmethod
    def validate_memory_budget(cls, v):
        """A negative budget makes no sense; 0 means unlimited."""
        if v < 0:
            raise ValueError("CACHE_MEMORY_MAX_SIZE_MB must be >= 0 (0 = unlimited)")
        return v

    @field_validator(
        "CACHE_MEMORY_TTL",
        "CACHE_REDIS_TTL",
        "CACHE_MEMORY_CLEANUP_INTERVAL_MS",
        "CACHE_TIER_TIMEOUT",
        "CACHE_RESET_BATCH_SIZE",
    )
    @classmethod
    def validate_positive(cls, v, info):
        """TTLs, intervals, timeouts and batch sizes must be positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @field_validator("CACHE_SCHEMA_VERSION", "REDIS_KEY_PREFIX")
    @classmethod
    def validate_key_segment(cls, v, info):
        """Key segments are joined with ':' and must not contain it."""
        if not v or ":" in v:
            raise ValueError(f"{info.field_name} must be non-empty and must not contain ':'")
        return v

    # Nested configuration objects
    @property
    def redis(self) -> RedisSettings:
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_CONNECT_RETRIES=self.REDIS_CONNECT_RETRIES,
            REDIS_KEY_PREFIX=self.REDIS_KEY_PREFIX,
        )

    @property
    def cache(self) -> CacheSettings:
        """Get cache settings."""
        return CacheSettings(
            CACHE_MEMORY_ENABLE=self.CACHE_MEMORY_ENABLE,
            CACHE_MEMORY_TTL=self.CACHE_MEMORY_TTL,
            CACHE_MEMORY_MAX_SIZE_MB=self.CACHE_MEMORY_MAX_SIZE_MB,
            CACHE_MEMORY_CLEANUP_ENABLED=self.CACHE_MEMORY_CLEANUP_ENABLED,
            CACHE_MEMORY_CLEANUP_INTERVAL_MS=self.CACHE_MEMORY_CLEANUP_INTERVAL_MS,
            CACHE_REDIS_ENABLE=self.CACHE_REDIS_ENABLE,
            CACHE_REDIS_TTL=self.CACHE_REDIS_TTL,
            CACHE_SCHEMA_VERSION=self.CACHE_SCHEMA_VERSION,
            CACHE_TIER_TIMEOUT=self.CACHE_TIER_TIMEOUT,
            CACHE_RESET_BATCH_SIZE=self.CACHE_RESET_BATCH_SIZE,
            CACHE_REQUEST_TRACKING=self.CACHE_REQUEST_TRACKING,
        )

    @property
    def logging(self) -> LoggingSettings:
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> ApplicationSettings:
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
            API_BASE_PATH=self.API_BASE_PATH,
            IMAGE_CDN_URL=self.IMAGE_CDN_URL,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    Returns:
        Settings: Global settings instance

    Settings are read-only configuration, so one lazily built instance is
    shared by the whole process. Cache state itself is never global: it lives
    on the CacheManager that the application constructs.
    """
    global _settings

    if _settings is None:
        _settings = Settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance
    """
    global _settings
    _settings = Settings()
    return _settings
