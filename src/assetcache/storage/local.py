"""Local filesystem key-value store.

Stores one record per file in a single directory:
    {base_path}/{sha256(key)}

Each file holds a small JSON envelope, {"key": ..., "value": ...}, so file
names stay a fixed 64 characters however long the key is.

This provides:
- Durable records without external services (the mobile-app default)
- Atomic overwrites via write-to-temp then rename
- Easy inspection and wiping of the cache directory
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable
from pathlib import Path
from uuid import uuid4

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]
import orjson

from assetcache.errors import StorageError
from assetcache.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def record_filename(key: str) -> str:
    """File name for a store key: hex SHA-256 of its UTF-8 bytes."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def _decode_envelope(raw: str) -> tuple[str, str] | None:
    try:
        envelope = orjson.loads(raw)
    except orjson.JSONDecodeError:
        return None
    if not isinstance(envelope, dict):
        return None
    key, value = envelope.get("key"), envelope.get("value")
    if not isinstance(key, str) or not isinstance(value, str):
        return None
    return key, value


class LocalKeyValueStore(KeyValueStore):
    """Directory-backed key-value store."""

    def __init__(self, base_path: str | Path = "~/.cache/assetcache"):
        """Initialize local key-value store.

        Args:
            base_path: Directory holding one file per record
        """
        self.base_path = Path(base_path).expanduser()

    async def _ensure_directory(self) -> None:
        """Ensure the store directory exists."""
        if not await aiofiles.os.path.exists(self.base_path):
            await aiofiles.os.makedirs(self.base_path, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        return self.base_path / record_filename(key)

    async def get_all(self, prefix: str) -> dict[str, str]:
        """Read every record whose key starts with prefix.

        Files that are not readable envelopes are skipped; the key they
        belong to cannot be recovered.
        """
        try:
            if not await aiofiles.os.path.exists(self.base_path):
                return {}
            names = await aiofiles.os.listdir(self.base_path)
        except OSError as exc:
            raise StorageError(f"Cannot list {self.base_path}: {exc}") from exc

        records: dict[str, str] = {}
        for name in names:
            if name.endswith(TEMP_SUFFIX):
                continue
            try:
                # Undecodable bytes surface as corruption to the caller
                async with aiofiles.open(
                    self.base_path / name, "r", encoding="utf-8", errors="replace"
                ) as f:
                    raw = await f.read()
            except FileNotFoundError:
                continue  # Removed between listdir and open
            except IsADirectoryError:
                continue
            except OSError as exc:
                raise StorageError(f"Cannot read record file {name!r}: {exc}") from exc

            decoded = _decode_envelope(raw)
            if decoded is None:
                logger.warning(f"Skipping unreadable record file {name!r} in {self.base_path}")
                continue
            key, value = decoded
            if key.startswith(prefix):
                records[key] = value

        return records

    async def set(self, key: str, value: str) -> None:
        """Write a record atomically."""
        path = self._get_path(key)
        temp_path = path.with_name(f"{path.name}.{uuid4().hex[:8]}{TEMP_SUFFIX}")
        payload = orjson.dumps({"key": key, "value": value})
        try:
            await self._ensure_directory()
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(payload)
            await aiofiles.os.replace(temp_path, path)
        except OSError as exc:
            await self._discard(temp_path)
            raise StorageError(f"Cannot write record {key!r}: {exc}") from exc

        logger.debug(f"Stored record {key!r} at {path}")

    async def _discard(self, temp_path: Path) -> None:
        try:
            await aiofiles.os.remove(temp_path)
        except OSError:
            pass  # Never created, or the directory itself is gone

    async def remove(self, key: str) -> None:
        """Delete a record if present."""
        path = self._get_path(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Cannot remove record {key!r}: {exc}") from exc

        logger.debug(f"Removed record {key!r} at {path}")

    async def remove_many(self, keys: Iterable[str]) -> None:
        """Delete several records, attempting every key before reporting failure."""
        failures: list[str] = []
        for key in keys:
            try:
                await self.remove(key)
            except StorageError:
                failures.append(key)
        if failures:
            raise StorageError(f"Cannot remove {len(failures)} record(s): {failures!r}")
