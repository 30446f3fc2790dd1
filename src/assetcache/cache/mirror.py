"""Durable mirror of the in-memory index.

Every successful resolution is written through to a KeyValueStore and the
whole namespace is read back once at startup. The mirror is an optimization:
every operation is best-effort, failures are logged and counted, never raised.

Background operations run strictly in submission order, so a removal
scheduled after a write for the same key always lands after it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from assetcache.cache.keys import CacheKeys
from assetcache.cache.models import CacheEntry, PersistedRecord
from assetcache.observability.metrics import record_persistence_error
from assetcache.storage.base import KeyValueStore

logger = logging.getLogger(__name__)


class DurableMirror:
    """Persistent copy of cache entries in a key-value store."""

    def __init__(self, store: KeyValueStore, keys: CacheKeys) -> None:
        self.store = store
        self.keys = keys
        self._tasks: set[asyncio.Task[None]] = set()
        self._tail: asyncio.Task[None] | None = None

    async def load_all(self, now: float) -> dict[str, CacheEntry]:
        """Load every valid entry.

        Expired and unparsable records are dropped and their removal is
        scheduled in the background; startup does not wait for it.
        """
        try:
            raw = await self.store.get_all(self.keys.prefix)
        except Exception as exc:
            logger.error(f"Failed to load cache from durable store: {exc}")
            record_persistence_error("load")
            return {}

        entries: dict[str, CacheEntry] = {}
        stale: list[str] = []
        for store_key, value in raw.items():
            key = self.keys.from_durable(store_key)
            if key is None:
                continue
            try:
                record = PersistedRecord.from_json(value)
            except ValueError as exc:
                logger.warning(f"Discarding corrupt cache record {store_key!r}: {exc}")
                stale.append(key)
                continue

            entry = record.to_entry(key)
            if entry.is_valid(now):
                entries[key] = entry
            else:
                stale.append(key)

        if stale:
            logger.info(f"Purging {len(stale)} expired or corrupt cache record(s)")
            self.spawn(self.remove_many, stale)

        logger.debug(f"Loaded {len(entries)} cache entries from durable store")
        return entries

    async def persist(self, key: str, entry: CacheEntry) -> None:
        """Write one entry."""
        try:
            await self.store.set(self.keys.durable(key), PersistedRecord.from_entry(entry).to_json())
        except Exception as exc:
            logger.warning(f"Failed to persist cache entry for {key}: {exc}")
            record_persistence_error("persist")

    async def remove(self, key: str) -> None:
        """Delete one entry."""
        try:
            await self.store.remove(self.keys.durable(key))
        except Exception as exc:
            logger.warning(f"Failed to remove cache entry for {key}: {exc}")
            record_persistence_error("remove")

    async def remove_many(self, keys: Iterable[str]) -> None:
        """Delete several entries in one store call."""
        store_keys = [self.keys.durable(key) for key in keys]
        if not store_keys:
            return
        try:
            await self.store.remove_many(store_keys)
        except Exception as exc:
            logger.warning(f"Failed to remove {len(store_keys)} cache entries: {exc}")
            record_persistence_error("remove")

    async def clear(self) -> None:
        """Delete every record in the namespace, including ones never loaded."""
        try:
            raw = await self.store.get_all(self.keys.prefix)
            if raw:
                await self.store.remove_many(list(raw))
        except Exception as exc:
            logger.warning(f"Failed to clear durable cache: {exc}")
            record_persistence_error("clear")

    def spawn(self, operation: Callable[..., Awaitable[None]], *args: Any) -> asyncio.Task[None]:
        """Run a mirror operation as a detached background task.

        The task waits for the previously spawned one to settle first.
        """
        previous = self._tail

        async def run() -> None:
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            await operation(*args)

        task = asyncio.create_task(run())
        self._tail = task
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if self._tail is task:
            self._tail = None
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Durable mirror task failed: {task.exception()!r}")

    @property
    def pending(self) -> int:
        """Number of background operations not yet settled."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every outstanding background operation."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
