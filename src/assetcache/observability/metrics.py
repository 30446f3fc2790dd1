"""Prometheus metrics for the resolution cache.

Provides metrics collection and exposure:
- Resolution outcomes (cache hit, fetched, failed)
- Fetch attempts and latency
- Durable mirror errors
- Current index size

Usage:
    from assetcache.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.resolutions_total.labels(outcome="hit").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram
from prometheus_client import generate_latest as prometheus_generate_latest

from assetcache.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""

    def dec(self, amount: float = 1) -> None:
        """No-op."""

    def set(self, value: float) -> None:
        """No-op."""

    def observe(self, value: float) -> None:
        """No-op."""


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    resolutions_total: Any = field(default_factory=NoOpMetric)
    fetch_attempts_total: Any = field(default_factory=NoOpMetric)
    fetch_duration_seconds: Any = field(default_factory=NoOpMetric)
    persistence_errors_total: Any = field(default_factory=NoOpMetric)
    cache_entries: Any = field(default_factory=NoOpMetric)

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = registry or REGISTRY

        self.resolutions_total = Counter(
            "assetcache_resolutions_total",
            "Key resolutions by outcome",
            ["outcome"],
            registry=self._registry,
        )

        self.fetch_attempts_total = Counter(
            "assetcache_fetch_attempts_total",
            "Resolver attempts by result",
            ["result"],
            registry=self._registry,
        )

        self.fetch_duration_seconds = Histogram(
            "assetcache_fetch_duration_seconds",
            "Time to resolve a key including retries, in seconds",
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )

        self.persistence_errors_total = Counter(
            "assetcache_persistence_errors_total",
            "Durable mirror operations that failed",
            ["operation"],
            registry=self._registry,
        )

        self.cache_entries = Gauge(
            "assetcache_entries",
            "Entries currently held in the in-memory index",
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return prometheus_generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_resolution(outcome: str) -> None:
    """Record a resolution outcome (hit, fetched, failed)."""
    get_metrics().resolutions_total.labels(outcome=outcome).inc()


def record_fetch_attempt(result: str) -> None:
    """Record one resolver attempt (success, error, not_found)."""
    get_metrics().fetch_attempts_total.labels(result=result).inc()


def record_fetch_duration(duration: float) -> None:
    """Record total fetch latency in seconds."""
    get_metrics().fetch_duration_seconds.observe(duration)


def record_persistence_error(operation: str) -> None:
    """Record a failed durable mirror operation (load, persist, remove, clear)."""
    get_metrics().persistence_errors_total.labels(operation=operation).inc()


def set_cache_entries(count: int) -> None:
    """Publish the current in-memory index size."""
    get_metrics().cache_entries.set(count)
