"""Shared fakes for resolution cache tests."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable

import pytest

from assetcache.cache.resolution import ResolutionCache
from assetcache.errors import ResolverError, ResourceNotFoundError
from assetcache.resolvers.base import Resolver
from assetcache.storage.memory import InMemoryKeyValueStore


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedResolver(Resolver):
    """Resolver whose outcome per key is scripted up front."""

    def __init__(self) -> None:
        self.calls: dict[str, int] = defaultdict(int)
        self.failures_before_success: dict[str, int] = {}
        self.always_fail: set[str] = set()
        self.not_found: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.closed = False

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    async def resolve(self, key: str) -> str:
        self.calls[key] += 1
        if self.gate is not None:
            await self.gate.wait()
        if key in self.not_found:
            raise ResourceNotFoundError("HTTP 404: Not Found")
        if key in self.always_fail:
            raise ResolverError("HTTP 503: Service Unavailable")
        remaining = self.failures_before_success.get(key, 0)
        if remaining > 0:
            self.failures_before_success[key] = remaining - 1
            raise ResolverError("HTTP 500: Internal Server Error")
        return f"https://cdn.example.com/{key}?call={self.calls[key]}"

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


async def _wait_for_calls(resolver: ScriptedResolver, key: str, count: int = 1) -> None:
    for _ in range(100):
        if resolver.calls[key] >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"resolver never reached {count} call(s) for {key!r}")


@pytest.fixture
def wait_for_calls() -> Callable[..., Awaitable[None]]:
    """Yield to the loop until the resolver has seen enough calls for a key."""
    return _wait_for_calls


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def resolver() -> ScriptedResolver:
    return ScriptedResolver()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_cache(
    resolver: ScriptedResolver,
    store: InMemoryKeyValueStore,
    clock: FakeClock,
    sleeper: RecordingSleep,
) -> Callable[..., ResolutionCache]:
    """Build caches sharing the test's store and clock."""

    def factory(**overrides: object) -> ResolutionCache:
        options: dict[str, object] = {
            "resolver": resolver,
            "store": store,
            "ttl": 60.0,
            "max_attempts": 3,
            "retry_delay": 0.0,
            "clock": clock,
            "sleep": sleeper,
        }
        options.update(overrides)
        return ResolutionCache(**options)  # type: ignore[arg-type]

    return factory
