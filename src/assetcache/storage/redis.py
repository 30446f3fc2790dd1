"""Redis key-value store.

Backs the durable mirror with redis-py's async client, for deployments
where several processes share one cache.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

import redis.asyncio as redis
from redis.exceptions import RedisError

from assetcache.errors import StorageError
from assetcache.storage.base import KeyValueStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Keys fetched per MGET round trip
MGET_BATCH_SIZE = 500

_GLOB_SPECIALS = re.compile(r"([*?\[\]\\])")


def escape_pattern(prefix: str) -> str:
    """Escape glob metacharacters so a prefix matches literally in SCAN MATCH."""
    return _GLOB_SPECIALS.sub(r"\\\1", prefix)


class RedisKeyValueStore(KeyValueStore):
    """Redis-backed key-value store."""

    def __init__(self, url: str = "redis://localhost:6379/0", client: Redis | None = None):
        self.url = url
        self._client: Redis | None = client

    async def _get_client(self) -> Redis:
        """Get or create the Redis client."""
        if self._client is None:
            self._client = redis.from_url(  # type: ignore[no-untyped-call]
                self.url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._client

    async def get_all(self, prefix: str) -> dict[str, str]:
        client = await self._get_client()
        try:
            keys = [key async for key in client.scan_iter(match=f"{escape_pattern(prefix)}*")]
            records: dict[str, str] = {}
            for start in range(0, len(keys), MGET_BATCH_SIZE):
                batch = keys[start : start + MGET_BATCH_SIZE]
                values = await client.mget(batch)
                for key, value in zip(batch, values):
                    if value is not None:
                        records[_as_str(key)] = _as_str(value)
            return records
        except RedisError as exc:
            raise StorageError(f"Redis read failed: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        client = await self._get_client()
        try:
            await client.set(key, value)
        except RedisError as exc:
            raise StorageError(f"Redis write failed for {key!r}: {exc}") from exc

    async def remove(self, key: str) -> None:
        client = await self._get_client()
        try:
            await client.delete(key)
        except RedisError as exc:
            raise StorageError(f"Redis delete failed for {key!r}: {exc}") from exc

    async def remove_many(self, keys: Iterable[str]) -> None:
        batch = list(keys)
        if not batch:
            return
        client = await self._get_client()
        try:
            await client.delete(*batch)
        except RedisError as exc:
            raise StorageError(f"Redis bulk delete failed: {exc}") from exc

    async def close(self) -> None:
        """Close Redis connections."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _as_str(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value
