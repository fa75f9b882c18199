"""Thread records and the resource -> threads index."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import replace
from datetime import timedelta
from typing import Any, Callable

from coach_memory import KeyValueBackend
from coach_memory.keys import resource_threads_key, thread_key, thread_messages_key
from coach_memory.models import Thread, parse_timestamp, utcnow_iso

logger = logging.getLogger(__name__)

# Fields a caller may change through update_thread; identity fields are fixed.
_MUTABLE_FIELDS = ("title", "metadata")


class ThreadStore:
    """Owns thread lifecycle in the backend.

    Writes span several keys (thread hash, resource index, message list)
    and are not transactional: a failure part-way leaves the earlier
    writes in place.  Reads skip index entries whose thread is gone.

    Parameters
    ----------
    backend:
        Shared async key-value client.
    clock:
        Returns the current time as an ISO-8601 string.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        clock: Callable[[], str] = utcnow_iso,
    ) -> None:
        self._backend = backend
        self._clock = clock

    async def create_thread(
        self,
        resource_id: str,
        title: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Thread:
        """HSET the thread, then SADD it to the resource index."""
        thread = Thread.create(
            resource_id=resource_id,
            title=title,
            metadata=metadata,
            now=self._clock(),
        )
        await self._backend.hset(thread_key(thread.id), mapping=thread.to_hash())
        await self._backend.sadd(resource_threads_key(resource_id), thread.id)
        logger.debug("Created thread %s for resource %s", thread.id, resource_id)
        return thread

    async def get_thread_by_id(self, thread_id: str) -> Thread | None:
        """HGETALL the thread.  Returns ``None`` when absent or empty."""
        key = thread_key(thread_id)
        data = await self._backend.hgetall(key)
        if not data:
            return None
        return Thread.from_hash(key, data)

    async def get_threads_by_resource_id(self, resource_id: str) -> list[Thread]:
        """Resolve the resource index, most recently updated first."""
        thread_ids = await self._backend.smembers(resource_threads_key(resource_id))
        if not thread_ids:
            return []

        resolved = await asyncio.gather(
            *(self.get_thread_by_id(tid) for tid in thread_ids)
        )
        threads = [t for t in resolved if t is not None]
        if len(threads) < len(resolved):
            logger.debug(
                "Skipped %d dangling index entries for resource %s",
                len(resolved) - len(threads),
                resource_id,
            )
        return sorted(
            threads,
            key=lambda t: parse_timestamp(t.updated_at),
            reverse=True,
        )

    async def update_thread(
        self,
        thread_id: str,
        updates: Mapping[str, Any] | None = None,
    ) -> Thread | None:
        """Merge *updates* into the stored thread and stamp ``updated_at``.

        Read-modify-write without concurrency control: concurrent updates
        are last-write-wins on the whole record.  Returns ``None`` when the
        thread does not exist.
        """
        existing = await self.get_thread_by_id(thread_id)
        if existing is None:
            return None

        changes = {f: updates[f] for f in _MUTABLE_FIELDS if updates and f in updates}
        updated = replace(
            existing,
            **changes,
            updated_at=self._next_stamp(existing.updated_at),
        )

        key = thread_key(thread_id)
        await self._backend.hset(key, mapping=updated.to_hash())
        cleared = [
            f for f, value in changes.items()
            if value is None and getattr(existing, f) is not None
        ]
        if cleared:
            await self._backend.hdel(key, *cleared)
        return updated

    async def delete_thread(self, thread_id: str) -> bool:
        """Remove index entry, message list and thread hash, in that order.

        Returns ``False`` if the thread did not exist.
        """
        thread = await self.get_thread_by_id(thread_id)
        if thread is None:
            return False

        await self._backend.srem(resource_threads_key(thread.resource_id), thread_id)
        await self._backend.delete(thread_messages_key(thread_id))
        await self._backend.delete(thread_key(thread_id))
        logger.debug("Deleted thread %s", thread_id)
        return True

    # -- Internals ------------------------------------------------------------

    def _next_stamp(self, previous: str) -> str:
        """Current time, nudged past *previous* so updates always advance."""
        stamp = self._clock()
        floor = parse_timestamp(previous)
        if parse_timestamp(stamp) <= floor:
            stamp = (floor + timedelta(microseconds=1)).isoformat()
        return stamp
