"""Shared fixtures for coach_memory tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from coach_memory.config import MemoryConfig
from coach_memory.memory_adapter import MemoryAdapter
from coach_memory.message_store import MessageStore
from coach_memory.thread_store import ThreadStore


class FakeBackend:
    """In-memory stand-in for ``redis.asyncio.Redis`` with Redis semantics
    for the commands the stores use.

    Set ``reachable = False`` to make every command raise a connection error.
    """

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.reachable = True
        self.closed = False

    def _check(self) -> None:
        if not self.reachable:
            raise RedisConnectionError("Error 111 connecting to localhost:6379")

    async def hset(self, name: str, mapping: dict[str, str]) -> int:
        self._check()
        bucket = self.data.setdefault(name, {})
        added = len(set(mapping) - set(bucket))
        bucket.update(mapping)
        return added

    async def hgetall(self, name: str) -> dict[str, str]:
        self._check()
        return dict(self.data.get(name, {}))

    async def hdel(self, name: str, *keys: str) -> int:
        self._check()
        bucket = self.data.get(name, {})
        removed = 0
        for k in keys:
            if bucket.pop(k, None) is not None:
                removed += 1
        return removed

    async def sadd(self, name: str, *values: str) -> int:
        self._check()
        bucket = self.data.setdefault(name, set())
        added = len(set(values) - bucket)
        bucket.update(values)
        return added

    async def srem(self, name: str, *values: str) -> int:
        self._check()
        bucket = self.data.get(name, set())
        removed = len(bucket & set(values))
        bucket.difference_update(values)
        return removed

    async def smembers(self, name: str) -> set[str]:
        self._check()
        return set(self.data.get(name, set()))

    async def lpush(self, name: str, *values: str) -> int:
        self._check()
        bucket = self.data.setdefault(name, [])
        for v in values:
            bucket.insert(0, v)
        return len(bucket)

    async def lrange(self, name: str, start: int, end: int) -> list[str]:
        self._check()
        bucket = self.data.get(name, [])
        n = len(bucket)
        if start < 0:
            start = max(n + start, 0)
        if end < 0:
            end = n + end
        end = min(end, n - 1)
        if start > end:
            return []
        return list(bucket[start:end + 1])

    async def delete(self, *names: str) -> int:
        self._check()
        return sum(1 for n in names if self.data.pop(n, None) is not None)

    async def flushall(self) -> bool:
        self._check()
        self.data.clear()
        return True

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True


def make_clock(start: str = "2026-01-01T00:00:00+00:00") -> Callable[[], str]:
    """Return a clock that advances one second on every call."""
    current = [datetime.fromisoformat(start)]

    def _clock() -> str:
        value = current[0]
        current[0] = value + timedelta(seconds=1)
        return value.astimezone(timezone.utc).isoformat()

    return _clock


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def clock() -> Callable[[], str]:
    return make_clock()


@pytest.fixture()
def thread_store(backend: FakeBackend, clock: Callable[[], str]) -> ThreadStore:
    return ThreadStore(backend, clock=clock)


@pytest.fixture()
def message_store(
    backend: FakeBackend, thread_store: ThreadStore, clock: Callable[[], str]
) -> MessageStore:
    return MessageStore(backend, thread_store, clock=clock)


@pytest.fixture()
def memory(backend: FakeBackend, clock: Callable[[], str]) -> MemoryAdapter:
    """MemoryAdapter over the fake backend with default config."""
    return MemoryAdapter(backend, config=MemoryConfig(), clock=clock)
