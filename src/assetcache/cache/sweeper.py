"""Periodic expiry sweep for the resolution cache.

Expired entries are already rejected at read time; the sweeper only bounds
how long they occupy memory and the durable store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from assetcache.cache.resolution import ResolutionCache

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Runs ``ResolutionCache.sweep_expired`` on a fixed interval."""

    def __init__(self, cache: ResolutionCache, interval: float = 3600.0) -> None:
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self.cache = cache
        self.interval = interval
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep loop in the background."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Expiry sweeper started (interval={self.interval}s)")

    async def stop(self) -> None:
        """Stop the sweep loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Expiry sweeper stopped")

    async def _run(self) -> None:
        while self._running:
            await asyncio.sleep(self.interval)
            await self.sweep_once()

    async def sweep_once(self) -> int:
        """Run one sweep, logging rather than raising on failure."""
        try:
            return await self.cache.sweep_expired()
        except Exception as exc:
            logger.error(f"Expiry sweep failed: {exc}")
            return 0
