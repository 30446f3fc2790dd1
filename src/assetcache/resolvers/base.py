"""Base resolver interface.

A resolver turns a storage-path key into a usable URL, or fails. It performs a
single attempt; retrying is the cache's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Resolver(ABC):
    """Abstract base class for remote storage resolvers."""

    @abstractmethod
    async def resolve(self, key: str) -> str:
        """Resolve a key to a URL.

        Args:
            key: Storage path of the resource (e.g., "images/chapter1/fig2.jpg")

        Returns:
            URL the resource can be fetched from

        Raises:
            ResolverError: If this attempt failed and may be retried
            ResourceNotFoundError: If the resource does not exist
        """
        ...

    async def close(self) -> None:
        """Release any network resources held by the resolver."""
        return None
