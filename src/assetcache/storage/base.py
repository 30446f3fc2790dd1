"""Base key-value store interface.

Defines the abstract interface for the durable string-to-string stores that
back the resolution cache's persistent mirror.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class KeyValueStore(ABC):
    """Abstract base class for durable key-value store backends."""

    @abstractmethod
    async def get_all(self, prefix: str) -> dict[str, str]:
        """Read every record whose key starts with a prefix.

        Args:
            prefix: Namespace prefix to match (e.g., "asset_url:")

        Returns:
            Mapping of full store key to stored value

        Raises:
            StorageError: If the store cannot be read
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a value, overwriting any previous one.

        Raises:
            StorageError: If the write fails
        """
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key. Deleting a missing key is not an error.

        Raises:
            StorageError: If the delete fails
        """
        ...

    async def remove_many(self, keys: Iterable[str]) -> None:
        """Delete several keys.

        Backends with a bulk delete primitive should override this.
        """
        for key in keys:
            await self.remove(key)

    async def close(self) -> None:
        """Release any connections held by the store."""
        return None
