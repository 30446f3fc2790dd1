"""Observability module for assetcache.

Provides metrics and structured logging:
- Prometheus metrics for resolutions, fetch attempts and persistence errors
- JSON structured logging with asset key and batch context
"""

from assetcache.observability.logging import (
    LogContext,
    asset_key_var,
    batch_id_var,
    configure_logging,
)
from assetcache.observability.metrics import (
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "asset_key_var",
    "batch_id_var",
    # Metrics
    "metrics_registry",
    "get_metrics",
]
