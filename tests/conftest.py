"""Global pytest configuration and fixtures.

Gives every test its own Prometheus registry so counters never leak
between tests.
"""

from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from assetcache.observability import metrics


@pytest.fixture(autouse=True)
def isolated_metrics(monkeypatch: pytest.MonkeyPatch) -> metrics.MetricsRegistry:
    """Replace the global metrics registry with a fresh one per test."""
    fresh = metrics.MetricsRegistry()
    fresh.initialize(CollectorRegistry())
    monkeypatch.setattr(metrics, "metrics_registry", fresh)
    return fresh
