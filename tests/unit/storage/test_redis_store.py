"""Unit tests for the Redis key-value store."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from assetcache.errors import StorageError
from assetcache.storage.redis import RedisKeyValueStore, escape_pattern


class FakeRedis:
    """Minimal async Redis double supporting prefix SCAN patterns."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.mget_calls = 0
        self.closed = False
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        self._check()
        assert match.endswith("*")
        prefix = re.sub(r"\\(.)", r"\1", match[:-1])
        for key in list(self.data):
            if key.startswith(prefix):
                yield key

    async def mget(self, keys: list[str]) -> list[str | None]:
        self._check()
        self.mget_calls += 1
        return [self.data.get(key) for key in keys]

    async def set(self, key: str, value: str) -> None:
        self._check()
        self.data[key] = value

    async def delete(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis) -> RedisKeyValueStore:
    return RedisKeyValueStore(client=fake_redis)  # type: ignore[arg-type]


def test_escape_pattern() -> None:
    assert escape_pattern("asset_url:") == "asset_url:"
    assert escape_pattern("a*b?[c]\\") == "a\\*b\\?\\[c\\]\\\\"


@pytest.mark.asyncio
async def test_redis_store_roundtrip(store: RedisKeyValueStore, fake_redis: FakeRedis) -> None:
    await store.set("asset_url:a", "1")
    await store.set("asset_url:b", "2")
    await store.set("other", "3")

    assert await store.get_all("asset_url:") == {"asset_url:a": "1", "asset_url:b": "2"}

    await store.remove("asset_url:a")
    await store.remove_many(["asset_url:b", "missing"])
    await store.remove_many([])

    assert fake_redis.data == {"other": "3"}


@pytest.mark.asyncio
async def test_redis_store_prefix_with_glob_characters(
    store: RedisKeyValueStore, fake_redis: FakeRedis
) -> None:
    fake_redis.data = {"img[1]*:a": "1", "img1:a": "2"}

    assert await store.get_all("img[1]*:") == {"img[1]*:a": "1"}


@pytest.mark.asyncio
async def test_redis_store_batches_mget(store: RedisKeyValueStore, fake_redis: FakeRedis) -> None:
    fake_redis.data = {f"asset_url:{i}": str(i) for i in range(1200)}

    records = await store.get_all("asset_url:")

    assert len(records) == 1200
    assert fake_redis.mget_calls == 3


@pytest.mark.asyncio
async def test_redis_errors_become_storage_errors(
    store: RedisKeyValueStore, fake_redis: FakeRedis
) -> None:
    fake_redis.fail = True

    with pytest.raises(StorageError):
        await store.get_all("asset_url:")
    with pytest.raises(StorageError):
        await store.set("k", "v")
    with pytest.raises(StorageError):
        await store.remove("k")
    with pytest.raises(StorageError):
        await store.remove_many(["k"])


@pytest.mark.asyncio
async def test_redis_store_close(store: RedisKeyValueStore, fake_redis: FakeRedis) -> None:
    await store.close()
    await store.close()

    assert fake_redis.closed is True
