"""Structured logging for the resolution cache.

Every record emitted while a key is being fetched carries the key, and every
record emitted inside a batch carries a short batch id, so one slow or failing
asset can be followed through retries without grepping by message text.

Usage:
    from assetcache.observability.logging import configure_logging

    configure_logging(json_format=True, level="INFO")
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

# Context variables for resolution correlation
asset_key_var: contextvars.ContextVar[str] = contextvars.ContextVar("asset_key", default="")
batch_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("batch_id", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "asset_key": asset_key_var,
    "batch_id": batch_id_var,
}

# Attributes every LogRecord has; anything else came in through ``extra=``
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_NOISY_LOGGERS = ("httpx", "httpcore", "google", "urllib3")


def current_context() -> dict[str, str]:
    """Non-empty correlation values bound to the running task."""
    return {name: value for name, var in _CONTEXT_VARS.items() if (value := var.get())}


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Example:
    {"timestamp": "2026-01-10T12:34:56.789+00:00", "level": "WARNING",
     "logger": "assetcache.cache.resolution",
     "message": "Fetch attempt 1/3 failed for images/a.jpg: HTTP 503: Service Unavailable",
     "asset_key": "images/a.jpg", "batch_id": "3f2a9c1e"}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(current_context())

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value

        return orjson.dumps(payload, default=str).decode("utf-8")


class ConsoleFormatter(logging.Formatter):
    """Single-line human-readable format for development.

    2026-01-10 12:34:56 | WARNING  | assetcache.cache.resolution | Fetch failed | key=images/a.jpg
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    _LABELS = {"asset_key": "key", "batch_id": "batch"}

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        parts = [when, level, record.name, record.getMessage()]
        context = current_context()
        if context:
            parts.append(" ".join(f"{self._LABELS[k]}={v}" for k, v in context.items()))

        line = " | ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        json_format: JSON lines (production) or console lines (development)
        level: Root log level name, case-insensitive
        use_colors: Colorize level names on a TTY in console format
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """Bind correlation values for the duration of a ``with`` block.

    Usage:
        with LogContext(asset_key="images/a.jpg"):
            logger.info("Resolving")  # Includes asset_key

    Unknown names are ignored. Nested contexts restore the outer values on exit.
    """

    def __init__(self, **kwargs: str) -> None:
        self.values = kwargs
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> "LogContext":
        for name, value in self.values.items():
            var = _CONTEXT_VARS.get(name)
            if var is not None:
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
