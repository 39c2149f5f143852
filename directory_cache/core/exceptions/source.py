"""
Source-of-Truth Exceptions

Raised by directory store implementations. The cache never catches these:
a failing source query reaches the caller unchanged.
"""

from directory_cache.core.exceptions.base import DirectoryError


class SourceFetchError(DirectoryError):
    """Raised when the relational store cannot answer a page query."""
    pass
