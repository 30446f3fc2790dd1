"""Resolution cache for assetcache.

Turns storage paths into time-limited URLs:
- In-memory index with a fixed TTL per entry
- Durable mirror in a key-value store, loaded once at startup
- One in-flight fetch per key with linear-backoff retries
- Batch resolution with per-key success/failure reports
- Explicit invalidation and periodic expiry sweeps
"""

from assetcache.cache.keys import CacheKeys
from assetcache.cache.mirror import DurableMirror
from assetcache.cache.models import (
    BatchResult,
    CacheEntry,
    CacheStatus,
    FailedAsset,
    PersistedRecord,
    PreloadReport,
    ResolvedAsset,
    ResolveResult,
)
from assetcache.cache.resolution import ResolutionCache
from assetcache.cache.runtime import (
    get_resolution_cache,
    start_resolution_cache,
    stop_resolution_cache,
)
from assetcache.cache.sweeper import ExpirySweeper

__all__ = [
    # Core cache
    "ResolutionCache",
    "CacheKeys",
    "DurableMirror",
    "ExpirySweeper",
    # Models
    "CacheEntry",
    "PersistedRecord",
    "ResolveResult",
    "ResolvedAsset",
    "FailedAsset",
    "BatchResult",
    "CacheStatus",
    "PreloadReport",
    # Runtime
    "get_resolution_cache",
    "start_resolution_cache",
    "stop_resolution_cache",
]
