"""Conversation memory: threads and messages persisted in a key-value backend."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueBackend(Protocol):
    """Per-key primitives the stores rely on (satisfied by ``redis.asyncio.Redis``).

    Each call is atomic for a single key only; there is no multi-key
    transaction.
    """

    async def hset(self, name: str, mapping: dict[str, str]) -> Any:
        """Write the given fields into the hash at *name*."""
        ...

    async def hgetall(self, name: str) -> dict[str, str]:
        """Return every field of the hash; empty when the key is absent."""
        ...

    async def hdel(self, name: str, *keys: str) -> int:
        ...

    async def sadd(self, name: str, *values: str) -> int:
        ...

    async def srem(self, name: str, *values: str) -> int:
        ...

    async def smembers(self, name: str) -> set[str]:
        ...

    async def lpush(self, name: str, *values: str) -> int:
        """Push *values* onto the head of the list."""
        ...

    async def lrange(self, name: str, start: int, end: int) -> list[str]:
        """Return the inclusive slice ``start..end`` (negative = from tail)."""
        ...

    async def delete(self, *names: str) -> int:
        ...

    async def flushall(self) -> Any:
        ...

    async def ping(self) -> Any:
        ...


from coach_memory.config import MemoryConfig  # noqa: E402
from coach_memory.memory_adapter import MemoryAdapter, QueryResult  # noqa: E402
from coach_memory.memory_factory import create_memory  # noqa: E402
from coach_memory.message_store import MessageStore  # noqa: E402
from coach_memory.models import Message, Thread  # noqa: E402
from coach_memory.thread_store import ThreadStore  # noqa: E402

__all__ = [
    "KeyValueBackend",
    "MemoryAdapter",
    "MemoryConfig",
    "Message",
    "MessageStore",
    "QueryResult",
    "Thread",
    "ThreadStore",
    "create_memory",
]
