"""Remote storage resolvers.

Turn a storage-path key into a usable URL:
- HTTP (Firebase-style media URLs checked with HEAD)
- Google Cloud Storage (V4 signed URLs)
"""

from assetcache.resolvers.base import Resolver
from assetcache.resolvers.factory import create_resolver
from assetcache.resolvers.gcs import GcsResolver
from assetcache.resolvers.http import HttpResolver

__all__ = [
    "Resolver",
    "HttpResolver",
    "GcsResolver",
    "create_resolver",
]
