"""Key-value store factory for assetcache."""

from __future__ import annotations

from assetcache.config import settings
from assetcache.storage.base import KeyValueStore
from assetcache.storage.local import LocalKeyValueStore
from assetcache.storage.memory import InMemoryKeyValueStore
from assetcache.storage.redis import RedisKeyValueStore


def create_key_value_store() -> KeyValueStore:
    """Create a KeyValueStore based on settings."""
    store_type = settings.kv_store_type.lower()
    if store_type in {"memory", "inmemory", "in_memory"}:
        return InMemoryKeyValueStore()
    if store_type in {"local", "file", "filesystem"}:
        return LocalKeyValueStore(base_path=settings.kv_store_path)
    if store_type == "redis":
        return RedisKeyValueStore(url=settings.redis_url)

    raise ValueError("Unsupported kv_store_type. Supported values: memory, local, redis.")
