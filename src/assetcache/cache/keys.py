"""Durable key schema for the resolution cache.

Key format: {namespace}{cache_key}

Where:
- namespace: fixed prefix separating cache records from unrelated data in
  the same key-value store (default "asset_url:")
- cache_key: the storage path exactly as callers pass it
"""

from __future__ import annotations

DEFAULT_NAMESPACE = "asset_url:"


class CacheKeys:
    """Maps cache keys to durable store keys and back."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        if not namespace:
            raise ValueError("Cache namespace must be non-empty")
        self.namespace = namespace

    @property
    def prefix(self) -> str:
        """Prefix shared by every durable record of this cache."""
        return self.namespace

    def durable(self, key: str) -> str:
        """Durable store key for a cache key."""
        return f"{self.namespace}{key}"

    def from_durable(self, store_key: str) -> str | None:
        """Cache key for a durable store key, or None if outside the namespace."""
        if not store_key.startswith(self.namespace):
            return None
        return store_key[len(self.namespace) :]
