"""assetcache: remote-asset resolution cache.

Resolves image storage paths to usable, time-limited URLs with request
deduplication, retries and a durable mirror that survives restarts.
"""

from assetcache.cache import (
    BatchResult,
    CacheStatus,
    FailedAsset,
    PreloadReport,
    ResolutionCache,
    ResolvedAsset,
    ResolveResult,
    get_resolution_cache,
    start_resolution_cache,
    stop_resolution_cache,
)
from assetcache.errors import (
    AssetCacheError,
    ConfigurationError,
    ResolverError,
    ResourceNotFoundError,
    StorageError,
)

__version__ = "0.1.0"

__all__ = [
    "ResolutionCache",
    "ResolveResult",
    "ResolvedAsset",
    "FailedAsset",
    "BatchResult",
    "CacheStatus",
    "PreloadReport",
    "get_resolution_cache",
    "start_resolution_cache",
    "stop_resolution_cache",
    "AssetCacheError",
    "ConfigurationError",
    "ResolverError",
    "ResourceNotFoundError",
    "StorageError",
]
