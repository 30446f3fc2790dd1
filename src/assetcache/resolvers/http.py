"""HTTP resolver for Firebase-style download URLs.

Builds the public media URL for a storage path and confirms it is reachable
with a HEAD request before handing it out:

    https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{quoted path}?alt=media
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from assetcache.errors import ConfigurationError, ResolverError, ResourceNotFoundError
from assetcache.resolvers.base import Resolver

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/"


class HttpResolver(Resolver):
    """Resolve keys to media URLs checked over HTTP."""

    def __init__(
        self,
        bucket: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP resolver.

        Args:
            bucket: Storage bucket name; required
            base_url: URL template, ``{bucket}`` is substituted
            timeout: Per-request timeout in seconds
            client: Optional preconfigured httpx client

        Raises:
            ConfigurationError: If no bucket is configured
        """
        if not bucket:
            raise ConfigurationError("Storage bucket is not configured (set STORAGE_BUCKET)")
        self.bucket = bucket
        self.base_url = base_url.format(bucket=bucket)
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    def build_url(self, key: str) -> str:
        """Build the media URL for a key, percent-encoding every reserved character."""
        return f"{self.base_url}{quote(key, safe='')}?alt=media"

    async def resolve(self, key: str) -> str:
        url = self.build_url(key)
        client = self._get_client()
        try:
            response = await client.head(url)
        except httpx.TimeoutException as exc:
            raise ResolverError(f"Timed out checking {key}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ResolverError(f"Network error checking {key}: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise ResourceNotFoundError(f"HTTP 404: {response.reason_phrase}")
        if not response.is_success:
            raise ResolverError(f"HTTP {response.status_code}: {response.reason_phrase}")

        return url

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
