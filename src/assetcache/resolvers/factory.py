"""Resolver factory for assetcache."""

from __future__ import annotations

from assetcache.config import settings
from assetcache.errors import ConfigurationError
from assetcache.resolvers.base import Resolver
from assetcache.resolvers.gcs import GcsResolver
from assetcache.resolvers.http import HttpResolver


def create_resolver() -> Resolver:
    """Create a Resolver based on settings.

    Raises:
        ConfigurationError: If the resolver type is unknown or the bucket is unset
    """
    resolver_type = settings.resolver_type.lower()
    if resolver_type in {"http", "firebase"}:
        return HttpResolver(
            bucket=settings.storage_bucket,
            base_url=settings.resolver_base_url,
            timeout=settings.resolver_timeout,
        )
    if resolver_type == "gcs":
        return GcsResolver(
            bucket=settings.storage_bucket,
            project=settings.gcs_project,
            credentials_path=settings.gcs_credentials_path,
            expiration=settings.signed_url_expiration,
        )

    raise ConfigurationError("Unsupported resolver_type. Supported values: http, firebase, gcs.")
