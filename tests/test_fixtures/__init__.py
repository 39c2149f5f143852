"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .directory_factory import (
    DirectoryTestFactory,
    FakeDirectoryStore,
    FakeGeolocation,
    FakeSystemConfig,
)
from .settings_factory import make_settings

__all__ = [
    "DirectoryTestFactory",
    "FakeDirectoryStore",
    "FakeGeolocation",
    "FakeSystemConfig",
    "make_settings",
]
