"""Runtime wiring for the process-wide resolution cache.

This module is the composition root: it builds exactly one ResolutionCache
per process from settings and hands the same instance to every caller.
"""

from __future__ import annotations

import logging

from assetcache.cache.resolution import ResolutionCache
from assetcache.cache.sweeper import ExpirySweeper
from assetcache.config import settings
from assetcache.observability.logging import configure_logging
from assetcache.resolvers.factory import create_resolver
from assetcache.storage.factory import create_key_value_store

logger = logging.getLogger(__name__)

_cache: ResolutionCache | None = None
_sweeper: ExpirySweeper | None = None


def create_resolution_cache() -> ResolutionCache:
    """Create a resolution cache based on configuration.

    Raises:
        ConfigurationError: If the resolver cannot be configured
    """
    return ResolutionCache.from_settings(
        resolver=create_resolver(),
        store=create_key_value_store(),
    )


def get_resolution_cache() -> ResolutionCache:
    """Get the singleton resolution cache instance."""
    global _cache
    if _cache is None:
        _cache = create_resolution_cache()
    return _cache


async def start_resolution_cache() -> ResolutionCache:
    """Configure logging, load the singleton cache and start sweeping."""
    global _sweeper
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    cache = get_resolution_cache()
    await cache.start()

    if settings.cache_sweep_interval > 0 and _sweeper is None:
        _sweeper = ExpirySweeper(cache, interval=settings.cache_sweep_interval)
        await _sweeper.start()

    logger.info("Resolution cache ready (%s)", type(cache.resolver).__name__)
    return cache


async def stop_resolution_cache() -> None:
    """Stop the sweeper and close the singleton cache."""
    global _cache, _sweeper
    if _sweeper is not None:
        await _sweeper.stop()
        _sweeper = None
    if _cache is None:
        return
    await _cache.close()
    logger.info("Resolution cache stopped")
    _cache = None
