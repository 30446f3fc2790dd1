"""Resolution cache: storage path -> time-limited URL.

Composes three parts that must stay coherent:
- In-memory index: authoritative working set for the process lifetime
- Durable mirror: write-through copy loaded once at startup
- Fetch coordinator: one in-flight fetch per key, linear-backoff retries,
  batch fan-out with per-key success/failure reporting

Failures below the batch boundary are returned as ResolveResult values.
Only ConfigurationError is raised, since no key could ever resolve.

Example:
    cache = ResolutionCache(resolver=HttpResolver(bucket="my-app"),
                            store=LocalKeyValueStore("/var/cache/assets"))
    await cache.start()

    result = await cache.resolve_one("images/chapter1/fig2.jpg")
    if result.success:
        show(result.url, instant=result.from_cache)
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from functools import partial
from uuid import uuid4

from assetcache.cache.keys import DEFAULT_NAMESPACE, CacheKeys
from assetcache.cache.mirror import DurableMirror
from assetcache.cache.models import (
    BatchResult,
    CacheEntry,
    CacheStatus,
    FailedAsset,
    PreloadReport,
    ResolvedAsset,
    ResolveResult,
)
from assetcache.config import settings
from assetcache.errors import ConfigurationError, ResolverError
from assetcache.observability.logging import LogContext
from assetcache.observability.metrics import (
    record_fetch_attempt,
    record_fetch_duration,
    record_resolution,
    set_cache_entries,
)
from assetcache.resolvers.base import Resolver
from assetcache.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_TTL = 24 * 60 * 60  # 24 hours
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds, multiplied by the attempt number

UNKNOWN_ERROR = "Unknown error occurred"


class ResolutionCache:
    """Deduplicating, persistent cache of resolved asset URLs.

    The index and the pending-fetch map are confined to one event loop and
    every read-modify-write on them happens under ``self._lock``.
    """

    def __init__(
        self,
        resolver: Resolver,
        store: KeyValueStore,
        *,
        ttl: float = DEFAULT_TTL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        retry_not_found: bool = False,
        namespace: str = DEFAULT_NAMESPACE,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the cache.

        Args:
            resolver: Resolves one key per attempt
            store: Durable key-value store for the mirror
            ttl: Seconds an entry stays valid after resolution
            max_attempts: Resolver attempts per fetch (at least 1)
            retry_delay: Base backoff; attempt N waits ``retry_delay * N``
            retry_not_found: Retry non-retryable resolver errors too
            namespace: Prefix of this cache's records in the store
            clock: Returns the current time in epoch seconds
            sleep: Awaitable sleep used between attempts
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        self.resolver = resolver
        self.store = store
        self.ttl = ttl
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.retry_not_found = retry_not_found
        self.keys = CacheKeys(namespace)
        self.mirror = DurableMirror(store, self.keys)
        self._clock = clock
        self._sleep = sleep

        self._index: dict[str, CacheEntry] = {}
        self._pending: dict[str, asyncio.Task[ResolveResult]] = {}
        self._lock = asyncio.Lock()
        self._start_lock = asyncio.Lock()
        self._started = False

    @classmethod
    def from_settings(cls, resolver: Resolver, store: KeyValueStore) -> ResolutionCache:
        """Create a cache with tuning taken from settings."""
        return cls(
            resolver=resolver,
            store=store,
            ttl=settings.cache_ttl_seconds,
            max_attempts=settings.cache_max_attempts,
            retry_delay=settings.cache_retry_delay,
            retry_not_found=settings.cache_retry_not_found,
            namespace=settings.cache_namespace,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Seed the index from the durable mirror. Safe to call repeatedly."""
        async with self._start_lock:
            if self._started:
                return
            entries = await self.mirror.load_all(self._clock())
            async with self._lock:
                for key, entry in entries.items():
                    self._index.setdefault(key, entry)
                count = len(self._index)
            self._started = True

        set_cache_entries(count)
        logger.info(f"Resolution cache started with {count} entries")

    async def close(self) -> None:
        """Let in-flight fetches settle, flush the mirror and release resources."""
        async with self._lock:
            pending = list(self._pending.values())
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self.mirror.drain()
        await self.resolver.close()
        await self.store.close()
        self._started = False
        logger.info("Resolution cache closed")

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    async def resolve_one(self, key: str) -> ResolveResult:
        """Resolve one key, sharing any in-flight fetch for it.

        Raises:
            ConfigurationError: If the resolver is misconfigured
        """
        if not self._started:
            await self.start()

        async with self._lock:
            task = self._pending.get(key)
            if task is None:
                entry = self._index.get(key)
                if entry is not None:
                    if entry.is_valid(self._clock()):
                        record_resolution("hit")
                        return ResolveResult.ok(entry.url, from_cache=True)
                    del self._index[key]
                    self.mirror.spawn(self.mirror.remove, key)

                task = asyncio.create_task(self._run_pending(key))
                task.add_done_callback(partial(self._on_fetch_done, key))
                self._pending[key] = task

        # A cancelled caller must not abort the fetch other callers share
        return await asyncio.shield(task)

    async def _run_pending(self, key: str) -> ResolveResult:
        try:
            return await self._fetch(key)
        finally:
            async with self._lock:
                if self._pending.get(key) is asyncio.current_task():
                    del self._pending[key]

    @staticmethod
    def _on_fetch_done(key: str, task: asyncio.Task[ResolveResult]) -> None:
        # Retrieves the exception even when every caller was cancelled
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Fetch for {key} aborted: {exc!r}")

    async def _fetch(self, key: str) -> ResolveResult:
        """Resolve one key against the resolver with linear backoff."""
        started = time.perf_counter()
        last_error = UNKNOWN_ERROR

        with LogContext(asset_key=key):
            for attempt in range(1, self.max_attempts + 1):
                try:
                    url = await self.resolver.resolve(key)
                except ConfigurationError:
                    raise
                except ResolverError as exc:
                    last_error = exc.message
                    retryable = exc.retryable or self.retry_not_found
                    record_fetch_attempt("error" if exc.retryable else "not_found")
                except Exception as exc:
                    last_error = str(exc) or type(exc).__name__
                    retryable = True
                    record_fetch_attempt("error")
                else:
                    record_fetch_attempt("success")
                    await self._store_entry(CacheEntry.create(key, url, self._clock(), self.ttl))
                    record_resolution("fetched")
                    record_fetch_duration(time.perf_counter() - started)
                    return ResolveResult.ok(url, from_cache=False)

                logger.warning(
                    "Fetch attempt %d/%d failed for %s: %s",
                    attempt,
                    self.max_attempts,
                    key,
                    last_error,
                )
                if not retryable:
                    break
                if attempt < self.max_attempts:
                    await self._sleep(self.retry_delay * attempt)

        record_resolution("failed")
        record_fetch_duration(time.perf_counter() - started)
        return ResolveResult.failure(last_error)

    async def _store_entry(self, entry: CacheEntry) -> None:
        """Index and persist a fresh entry, unless its fetch was invalidated meanwhile."""
        async with self._lock:
            if self._pending.get(entry.key) is not asyncio.current_task():
                logger.debug(f"Discarding result of invalidated fetch for {entry.key}")
                return
            self._index[entry.key] = entry
            count = len(self._index)
        set_cache_entries(count)
        self.mirror.spawn(self.mirror.persist, entry.key, entry)

    async def resolve_batch(self, keys: Iterable[str]) -> BatchResult:
        """Resolve many keys concurrently and report each one.

        One key's failure never affects its siblings; every key settles
        before this returns.

        Raises:
            ConfigurationError: If the resolver is misconfigured
        """
        keys = list(keys)
        result = BatchResult()
        if not keys:
            return result

        with LogContext(batch_id=uuid4().hex[:8]):
            outcomes = await asyncio.gather(
                *(self.resolve_one(key) for key in keys),
                return_exceptions=True,
            )

            for key, outcome in zip(keys, outcomes):
                if isinstance(outcome, ConfigurationError):
                    raise outcome
                if isinstance(outcome, BaseException):
                    logger.error(f"Unexpected error resolving {key}: {outcome!r}")
                    result.failed.append(FailedAsset(key=key, error=f"Unexpected error: {outcome}"))
                elif outcome.success and outcome.url is not None:
                    result.successful.append(
                        ResolvedAsset(key=key, url=outcome.url, from_cache=outcome.from_cache)
                    )
                else:
                    result.failed.append(FailedAsset(key=key, error=outcome.error or UNKNOWN_ERROR))

            if result.failed:
                logger.info(f"Resolved {len(result.successful)}/{len(keys)} keys in batch")

        return result

    async def retry(self, key: str) -> ResolveResult:
        """Drop any cached value for a key and resolve it from scratch."""
        await self.invalidate(key)
        return await self.resolve_one(key)

    async def preload(self, keys: Iterable[str]) -> PreloadReport:
        """Warm the cache for keys the caller is about to display."""
        keys = list(keys)
        result = await self.resolve_batch(keys)
        report = PreloadReport(
            total=len(keys),
            completed=len(result.successful),
            failed=result.failed_keys,
        )
        if report.error:
            logger.warning(report.error)
        return report

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def invalidate(self, key: str | None = None) -> None:
        """Forget one key, or everything when no key is given.

        A fetch already in flight for the key is detached: its callers still
        get its result but it is not cached, and the next call fetches anew.
        """
        if key is None:
            await self.invalidate_all()
            return

        async with self._lock:
            self._index.pop(key, None)
            self._pending.pop(key, None)
            count = len(self._index)
        set_cache_entries(count)
        self.mirror.spawn(self.mirror.remove, key)

    async def invalidate_all(self) -> None:
        """Clear the whole index and every durable record."""
        async with self._lock:
            self._index.clear()
            self._pending.clear()
        set_cache_entries(0)
        self.mirror.spawn(self.mirror.clear)
        logger.info("Resolution cache cleared")

    async def sweep_expired(self) -> int:
        """Purge expired entries from memory and the mirror.

        Returns:
            Number of entries purged
        """
        now = self._clock()
        async with self._lock:
            expired = [key for key, entry in self._index.items() if not entry.is_valid(now)]
            for key in expired:
                del self._index[key]
            count = len(self._index)

        if expired:
            set_cache_entries(count)
            self.mirror.spawn(self.mirror.remove_many, expired)
            logger.info(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def status(self) -> CacheStatus:
        """Count entries in the index by validity."""
        now = self._clock()
        entries = list(self._index.values())
        valid = sum(1 for entry in entries if entry.is_valid(now))
        return CacheStatus(total=len(entries), valid=valid, expired=len(entries) - valid)
