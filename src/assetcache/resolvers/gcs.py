"""Google Cloud Storage resolver.

Checks that the object exists and mints a V4 signed GET URL for it. The
google-cloud-storage client is synchronous, so every call goes through
``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any, cast

from assetcache.errors import ConfigurationError, ResourceNotFoundError
from assetcache.resolvers.base import Resolver


class GcsResolver(Resolver):
    """Resolve keys to signed URLs for objects in one GCS bucket."""

    def __init__(
        self,
        bucket: str | None,
        project: str | None = None,
        credentials_path: str | None = None,
        expiration: int = 25 * 60 * 60,
    ) -> None:
        """Initialize the GCS resolver.

        Args:
            bucket: Bucket holding the assets; required
            project: GCP project, defaults to the ambient one
            credentials_path: Service account JSON, defaults to ADC
            expiration: Lifetime of minted URLs in seconds

        Raises:
            ConfigurationError: If no bucket is configured
        """
        if not bucket:
            raise ConfigurationError("Storage bucket is not configured (set STORAGE_BUCKET)")
        self.bucket = bucket
        self.project = project
        self.credentials_path = credentials_path
        self.expiration = expiration
        self._client: Any | None = None
        self._client_lock = asyncio.Lock()

    def _build_client(self) -> Any:
        try:
            from google.cloud import storage
        except ImportError as exc:
            raise ConfigurationError(
                "google-cloud-storage is required for resolver_type='gcs' "
                "(install assetcache[gcs])"
            ) from exc

        if self.credentials_path:
            return storage.Client.from_service_account_json(
                self.credentials_path, project=self.project
            )
        return storage.Client(project=self.project)

    async def _get_client(self) -> Any:
        # Credential discovery may hit the metadata server
        if self._client is None:
            async with self._client_lock:
                if self._client is None:
                    self._client = await asyncio.to_thread(self._build_client)
        return self._client

    async def resolve(self, key: str) -> str:
        client = await self._get_client()
        blob = client.bucket(self.bucket).blob(key)

        if not await asyncio.to_thread(blob.exists):
            raise ResourceNotFoundError(f"Object not found: gs://{self.bucket}/{key}")

        url = await asyncio.to_thread(
            blob.generate_signed_url,
            version="v4",
            expiration=timedelta(seconds=self.expiration),
            method="GET",
        )
        return cast(str, url)

    async def close(self) -> None:
        if self._client is not None:
            await asyncio.to_thread(self._client.close)
            self._client = None
