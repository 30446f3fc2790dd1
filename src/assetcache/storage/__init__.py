"""Durable key-value stores for assetcache.

Backs the resolution cache's persistent mirror:
- Local directory storage (default, one file per record)
- Redis
- In-memory (tests and ephemeral deployments)
"""

from assetcache.storage.base import KeyValueStore
from assetcache.storage.factory import create_key_value_store
from assetcache.storage.local import LocalKeyValueStore
from assetcache.storage.memory import InMemoryKeyValueStore
from assetcache.storage.redis import RedisKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "LocalKeyValueStore",
    "RedisKeyValueStore",
    "create_key_value_store",
]
