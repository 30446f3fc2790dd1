"""Data model for the resolution cache.

In memory an entry carries epoch seconds; on disk it is a versioned JSON
record with millisecond timestamps:

    {"v": 1, "url": "...", "createdAt": 1760000000000, "expiresAt": 1760086400000}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import orjson
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

RECORD_VERSION = 1


@dataclass(frozen=True)
class CacheEntry:
    """A resolved URL and its validity window."""

    key: str
    url: str
    created_at: float
    expires_at: float

    @classmethod
    def create(cls, key: str, url: str, now: float, ttl: float) -> CacheEntry:
        return cls(key=key, url=url, created_at=now, expires_at=now + ttl)

    def is_valid(self, now: float) -> bool:
        """An entry is valid strictly before its expiry instant."""
        return now < self.expires_at


class PersistedRecord(BaseModel):
    """On-disk form of a CacheEntry.

    Records written before versioning carry no "v" and used "timestamp" for
    the creation time; both load as version 1. Any other version fails
    validation so the loader discards it.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    version: Literal[1] = Field(default=RECORD_VERSION, alias="v")
    url: str = Field(min_length=1)
    created_at: int = Field(
        validation_alias=AliasChoices("createdAt", "timestamp"),
        serialization_alias="createdAt",
    )
    expires_at: int = Field(alias="expiresAt")

    @classmethod
    def from_entry(cls, entry: CacheEntry) -> PersistedRecord:
        return cls(
            url=entry.url,
            created_at=int(entry.created_at * 1000),
            expires_at=int(entry.expires_at * 1000),
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> PersistedRecord:
        """Parse a stored record.

        Raises:
            ValueError: If the record is not valid JSON or does not match the
                schema (orjson.JSONDecodeError and pydantic.ValidationError
                are both ValueError subclasses)
        """
        return cls.model_validate(orjson.loads(raw))

    def to_json(self) -> str:
        return orjson.dumps(self.model_dump(by_alias=True)).decode("utf-8")

    def to_entry(self, key: str) -> CacheEntry:
        return CacheEntry(
            key=key,
            url=self.url,
            created_at=self.created_at / 1000,
            expires_at=self.expires_at / 1000,
        )


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of resolving one key. Failures are values, never raised."""

    success: bool
    url: str | None = None
    error: str | None = None
    from_cache: bool = False

    @classmethod
    def ok(cls, url: str, from_cache: bool = False) -> ResolveResult:
        return cls(success=True, url=url, from_cache=from_cache)

    @classmethod
    def failure(cls, error: str) -> ResolveResult:
        return cls(success=False, error=error)


@dataclass(frozen=True)
class ResolvedAsset:
    key: str
    url: str
    from_cache: bool = False


@dataclass(frozen=True)
class FailedAsset:
    key: str
    error: str


@dataclass
class BatchResult:
    """Per-key report of a batch resolution."""

    successful: list[ResolvedAsset] = field(default_factory=list)
    failed: list[FailedAsset] = field(default_factory=list)

    @property
    def urls(self) -> dict[str, str]:
        """Resolved URLs by key."""
        return {item.key: item.url for item in self.successful}

    @property
    def failed_keys(self) -> list[str]:
        return [item.key for item in self.failed]


@dataclass(frozen=True)
class CacheStatus:
    """Diagnostic counts over the in-memory index."""

    total: int
    valid: int
    expired: int


@dataclass(frozen=True)
class PreloadReport:
    """Result of warming the cache for a list of keys."""

    total: int
    completed: int
    failed: list[str] = field(default_factory=list)

    @property
    def error(self) -> str | None:
        if not self.failed:
            return None
        return f"Failed to preload {len(self.failed)} out of {self.total} images"
