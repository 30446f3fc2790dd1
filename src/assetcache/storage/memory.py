"""In-memory key-value store.

Holds records in a dict for the lifetime of the object. Nothing survives a
process restart, but sharing one instance between two caches simulates one.
"""

from __future__ import annotations

from collections.abc import Iterable

from assetcache.storage.base import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store for tests and ephemeral deployments."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get_all(self, prefix: str) -> dict[str, str]:
        return {key: value for key, value in self.data.items() if key.startswith(prefix)}

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    async def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)
