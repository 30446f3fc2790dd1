"""Exception types for the asset resolution cache.

Only ``ConfigurationError`` ever reaches callers of the cache. Resolver and
storage errors are captured below the batch boundary and reported as values.
"""

from __future__ import annotations


class AssetCacheError(Exception):
    """Base class for all assetcache errors."""


class ConfigurationError(AssetCacheError):
    """The cache cannot work at all (e.g. no storage bucket configured)."""


class ResolverError(AssetCacheError):
    """A single resolution attempt failed.

    Args:
        message: Human readable reason, surfaced in failure results
        retryable: Whether another attempt may succeed
    """

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class ResourceNotFoundError(ResolverError):
    """The resolver reports that the key does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=False)


class StorageError(AssetCacheError):
    """A durable key-value store operation failed."""
