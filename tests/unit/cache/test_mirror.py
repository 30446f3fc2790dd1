"""Tests for the durable mirror."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import orjson
import pytest

from assetcache.cache.keys import CacheKeys
from assetcache.cache.mirror import DurableMirror
from assetcache.cache.models import CacheEntry, PersistedRecord
from assetcache.errors import StorageError
from assetcache.storage.base import KeyValueStore
from assetcache.storage.memory import InMemoryKeyValueStore

NOW = 1_700_000_000.0


def record(url: str, created: float, expires: float) -> str:
    return PersistedRecord.from_entry(
        CacheEntry(key="", url=url, created_at=created, expires_at=expires)
    ).to_json()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def mirror(store: InMemoryKeyValueStore) -> DurableMirror:
    return DurableMirror(store, CacheKeys())


class TestLoadAll:
    """Tests for startup loading."""

    @pytest.mark.asyncio
    async def test_loads_valid_records(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["asset_url:a.jpg"] = record("https://x/a", NOW - 10, NOW + 10)

        entries = await mirror.load_all(NOW)

        assert entries == {
            "a.jpg": CacheEntry(key="a.jpg", url="https://x/a", created_at=NOW - 10, expires_at=NOW + 10)
        }

    @pytest.mark.asyncio
    async def test_expired_records_are_purged(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["asset_url:old.jpg"] = record("https://x/old", NOW - 20, NOW - 10)
        store.data["asset_url:new.jpg"] = record("https://x/new", NOW - 10, NOW + 10)

        entries = await mirror.load_all(NOW)
        await mirror.drain()

        assert list(entries) == ["new.jpg"]
        assert "asset_url:old.jpg" not in store.data
        assert "asset_url:new.jpg" in store.data

    @pytest.mark.asyncio
    async def test_record_expiring_exactly_now_is_purged(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["asset_url:edge.jpg"] = record("https://x/edge", NOW - 10, NOW)

        entries = await mirror.load_all(NOW)
        await mirror.drain()

        assert entries == {}
        assert store.data == {}

    @pytest.mark.asyncio
    async def test_corrupt_records_are_skipped_and_deleted(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["asset_url:broken.jpg"] = "{not json"
        store.data["asset_url:partial.jpg"] = '{"url": "https://x/p"}'
        store.data["asset_url:ok.jpg"] = record("https://x/ok", NOW, NOW + 60)

        entries = await mirror.load_all(NOW)
        await mirror.drain()

        assert list(entries) == ["ok.jpg"]
        assert set(store.data) == {"asset_url:ok.jpg"}

    @pytest.mark.asyncio
    async def test_unknown_version_is_discarded(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["asset_url:future.jpg"] = orjson.dumps(
            {"v": 2, "url": "https://x/f", "createdAt": NOW * 1000, "expiresAt": (NOW + 60) * 1000}
        ).decode()

        entries = await mirror.load_all(NOW)
        await mirror.drain()

        assert entries == {}
        assert store.data == {}

    @pytest.mark.asyncio
    async def test_legacy_timestamp_field_is_accepted(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["asset_url:legacy.jpg"] = orjson.dumps(
            {"url": "https://x/l", "timestamp": int(NOW * 1000), "expiresAt": int((NOW + 60) * 1000)}
        ).decode()

        entries = await mirror.load_all(NOW)

        assert entries["legacy.jpg"].url == "https://x/l"
        assert entries["legacy.jpg"].created_at == NOW

    @pytest.mark.asyncio
    async def test_other_namespaces_are_left_alone(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["user_settings"] = "{not json"
        store.data["other:a.jpg"] = record("https://x/a", NOW - 20, NOW - 10)

        entries = await mirror.load_all(NOW)
        await mirror.drain()

        assert entries == {}
        assert set(store.data) == {"user_settings", "other:a.jpg"}

    @pytest.mark.asyncio
    async def test_unreadable_store_loads_nothing(self) -> None:
        store = AsyncMock(spec=KeyValueStore)
        store.get_all.side_effect = StorageError("disk on fire")
        mirror = DurableMirror(store, CacheKeys())

        assert await mirror.load_all(NOW) == {}
        assert mirror.pending == 0


class TestWrites:
    """Tests for best-effort writes."""

    @pytest.mark.asyncio
    async def test_persist_writes_versioned_record(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        entry = CacheEntry.create("a.jpg", "https://x/a", NOW, 60)

        await mirror.persist("a.jpg", entry)

        assert orjson.loads(store.data["asset_url:a.jpg"]) == {
            "v": 1,
            "url": "https://x/a",
            "createdAt": int(NOW * 1000),
            "expiresAt": int((NOW + 60) * 1000),
        }

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self) -> None:
        store = AsyncMock(spec=KeyValueStore)
        store.set.side_effect = StorageError("read-only")
        store.remove.side_effect = StorageError("read-only")
        store.remove_many.side_effect = StorageError("read-only")
        store.get_all.side_effect = StorageError("read-only")
        mirror = DurableMirror(store, CacheKeys())

        await mirror.persist("a", CacheEntry.create("a", "https://x/a", NOW, 60))
        await mirror.remove("a")
        await mirror.remove_many(["a", "b"])
        await mirror.clear()

        store.remove_many.assert_awaited_once_with(["asset_url:a", "asset_url:b"])

    @pytest.mark.asyncio
    async def test_remove_many_with_no_keys_skips_store(self) -> None:
        store = AsyncMock(spec=KeyValueStore)
        mirror = DurableMirror(store, CacheKeys())

        await mirror.remove_many([])

        store.remove_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_clear_only_touches_namespace(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        store.data["asset_url:a"] = record("https://x/a", NOW, NOW + 60)
        store.data["asset_url:b"] = "garbage"
        store.data["unrelated"] = "keep me"

        await mirror.clear()

        assert store.data == {"unrelated": "keep me"}


class TestBackgroundOrdering:
    """Tests for spawned mirror operations."""

    @pytest.mark.asyncio
    async def test_operations_apply_in_submission_order(
        self, store: InMemoryKeyValueStore, mirror: DurableMirror
    ) -> None:
        entry = CacheEntry.create("a", "https://x/a", NOW, 60)

        mirror.spawn(mirror.persist, "a", entry)
        mirror.spawn(mirror.remove, "a")
        await mirror.drain()

        assert store.data == {}

    @pytest.mark.asyncio
    async def test_slow_operation_blocks_later_ones(self, mirror: DurableMirror) -> None:
        gate = asyncio.Event()
        order: list[str] = []

        async def slow() -> None:
            await gate.wait()
            order.append("slow")

        async def fast() -> None:
            order.append("fast")

        mirror.spawn(slow)
        mirror.spawn(fast)
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert order == []
        assert mirror.pending == 2

        gate.set()
        await mirror.drain()

        assert order == ["slow", "fast"]
        assert mirror.pending == 0

    @pytest.mark.asyncio
    async def test_failed_operation_does_not_stall_queue(self, mirror: DurableMirror) -> None:
        ran: list[str] = []

        async def boom() -> None:
            raise RuntimeError("unexpected")

        async def after() -> None:
            ran.append("after")

        mirror.spawn(boom)
        mirror.spawn(after)
        await mirror.drain()

        assert ran == ["after"]
