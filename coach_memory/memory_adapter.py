"""Memory façade consumed by the agent runtime."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Union

from coach_memory import KeyValueBackend
from coach_memory.config import MemoryConfig
from coach_memory.exceptions import (
    FlushNotAllowedError,
    InvalidSelectorError,
    UnsupportedRecallModeError,
)
from coach_memory.keys import resource_threads_key
from coach_memory.message_store import MessageStore
from coach_memory.models import Message, Thread, utcnow_iso
from coach_memory.thread_store import ThreadStore

logger = logging.getLogger(__name__)

# One of {"last": N}, {"first": N}, {"all": True}
SelectBy = Mapping[str, Union[int, bool]]


@dataclass(frozen=True)
class QueryResult:
    """Messages selected by :meth:`MemoryAdapter.query`.

    ``ui_messages`` is the same sequence as ``messages``; no UI-specific
    transform happens at this layer.
    """

    messages: list[Message]
    ui_messages: list[Message]


class MemoryAdapter:
    """Uniform thread/message contract over :class:`ThreadStore` and
    :class:`MessageStore`.

    Holds no entity state of its own.  Every call is fail-fast: backend
    errors propagate, missing entities come back as ``None``/``False``/``[]``.

    Parameters
    ----------
    backend:
        Shared async key-value client.
    config:
        Retrieval defaults and flush permission.  Defaults to
        ``MemoryConfig()``.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        config: MemoryConfig | None = None,
        clock: Callable[[], str] = utcnow_iso,
    ) -> None:
        self._config = config or MemoryConfig()
        if self._config.semantic_recall:
            raise UnsupportedRecallModeError(
                "semantic_recall=True is not supported; "
                "only recency-based recall is implemented"
            )
        self._backend = backend
        self.threads = ThreadStore(backend, clock=clock)
        self.messages = MessageStore(
            backend,
            self.threads,
            clock=clock,
            page_size=self._config.page_size,
        )

    @property
    def config(self) -> MemoryConfig:
        return self._config

    # -- Threads --------------------------------------------------------------

    async def create_thread(
        self,
        resource_id: str,
        title: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Thread:
        return await self.threads.create_thread(resource_id, title=title, metadata=metadata)

    async def get_thread_by_id(self, thread_id: str) -> Thread | None:
        return await self.threads.get_thread_by_id(thread_id)

    async def get_threads_by_resource_id(self, resource_id: str) -> list[Thread]:
        return await self.threads.get_threads_by_resource_id(resource_id)

    async def update_thread(
        self, thread_id: str, updates: Mapping[str, Any]
    ) -> Thread | None:
        return await self.threads.update_thread(thread_id, updates)

    async def delete_thread(self, thread_id: str) -> bool:
        return await self.threads.delete_thread(thread_id)

    # -- Messages -------------------------------------------------------------

    async def add_message(
        self,
        thread_id: str,
        role: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        return await self.messages.add_message(
            thread_id, role, content, metadata=metadata
        )

    async def query(
        self, thread_id: str, select_by: SelectBy | None = None
    ) -> QueryResult:
        """Select messages from a thread.

        ``{"last": N}``
            Newest *N*, newest first.
        ``{"first": N}``
            Oldest *N*, oldest first.
        ``{"all": True}``
            Newest-first, bounded by ``config.all_messages_cap``.

        ``None`` or ``{"all": False}`` use the configured ``last_messages``
        window.
        """
        if select_by is None:
            select_by = {}
        if not isinstance(select_by, Mapping):
            raise InvalidSelectorError(f"select_by must be a mapping, got {select_by!r}")

        if "last" in select_by:
            messages = await self.messages.get_messages(
                thread_id, limit=int(select_by["last"])
            )
        elif "first" in select_by:
            messages = await self.messages.get_first_messages(
                thread_id, int(select_by["first"])
            )
        elif "all" in select_by or not select_by:
            limit = (
                self._config.all_messages_cap
                if select_by.get("all")
                else self._config.last_messages
            )
            messages = await self.messages.get_messages(thread_id, limit=limit)
        else:
            raise InvalidSelectorError(
                f"Unknown selector {sorted(select_by)}; "
                "expected one of 'last', 'first', 'all'"
            )

        return QueryResult(messages=messages, ui_messages=messages)

    async def get_last_messages(
        self, thread_id: str, count: int | None = None
    ) -> list[Message]:
        if count is None:
            count = self._config.last_messages
        return await self.messages.get_last_messages(thread_id, count)

    # -- Maintenance ----------------------------------------------------------

    async def ping(self) -> bool:
        """PING the backend.  Connection errors propagate."""
        result = await self._backend.ping()
        return result is True or result == "PONG"

    async def clear(self) -> None:
        """FLUSHALL the entire backend, across every resource.

        Raises FlushNotAllowedError unless ``config.allow_flush`` is set.
        """
        if not self._config.allow_flush:
            raise FlushNotAllowedError(
                "Whole-store flush is disabled; set COACH_MEMORY_ALLOW_FLUSH=true "
                "or use clear_resource()"
            )
        logger.warning("Flushing entire backend at %s", self._config.redis_url)
        await self._backend.flushall()

    async def clear_resource(self, resource_id: str) -> int:
        """Delete every thread of *resource_id* with its message hashes.

        Returns the count of threads deleted.  Not atomic across keys: a
        ``create_thread`` for the same resource running concurrently can
        lose its index entry to the final DEL of the index key, leaving an
        unindexed thread hash behind.
        """
        deleted = 0
        for thread in await self.threads.get_threads_by_resource_id(resource_id):
            await self.messages.purge_messages(thread.id)
            if await self.threads.delete_thread(thread.id):
                deleted += 1
        # Drops index entries whose thread hash was already gone
        await self._backend.delete(resource_threads_key(resource_id))
        logger.info("Cleared %d thread(s) for resource %s", deleted, resource_id)
        return deleted

    async def aclose(self) -> None:
        """Release the backend client's connections, if it holds any."""
        close = getattr(self._backend, "aclose", None)
        if close is not None:
            await close()
