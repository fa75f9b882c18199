"""Per-thread message lists and message payloads."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from coach_memory import KeyValueBackend
from coach_memory.keys import message_key, thread_messages_key
from coach_memory.models import Message, utcnow_iso
from coach_memory.thread_store import ThreadStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50


class MessageStore:
    """Append-only message storage.

    Each thread keeps a list of message ids with the newest at the head,
    so head-anchored reads return newest-first.

    Parameters
    ----------
    backend:
        Shared async key-value client.
    threads:
        Used to refresh the owning thread's ``updated_at`` on append.
    page_size:
        Default ``limit`` for :meth:`get_messages`.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        threads: ThreadStore,
        clock: Callable[[], str] = utcnow_iso,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._backend = backend
        self._threads = threads
        self._clock = clock
        self._page_size = page_size

    async def add_message(
        self,
        thread_id: str,
        role: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        """HSET the message, LPUSH its id, then touch the thread.

        The three writes are not transactional; concurrent appends to one
        thread may land in the list in a different order than sent.

        Raises InvalidRoleError, before any write, when *role* is not one
        of ``user``, ``assistant`` or ``system``.
        """
        message = Message.create(
            thread_id=thread_id,
            role=role,
            content=content,
            metadata=metadata,
            now=self._clock(),
        )
        await self._backend.hset(message_key(message.id), mapping=message.to_hash())
        await self._backend.lpush(thread_messages_key(thread_id), message.id)

        touched = await self._threads.update_thread(thread_id, {})
        if touched is None:
            logger.debug("Message %s appended to unknown thread %s", message.id, thread_id)
        return message

    async def get_messages(
        self,
        thread_id: str,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Message]:
        """Read *limit* messages starting *offset* from the newest."""
        if limit is None:
            limit = self._page_size
        if limit <= 0:
            return []
        offset = max(offset, 0)
        message_ids = await self._backend.lrange(
            thread_messages_key(thread_id), offset, offset + limit - 1
        )
        return await self._resolve(thread_id, message_ids)

    async def get_last_messages(self, thread_id: str, count: int) -> list[Message]:
        return await self.get_messages(thread_id, limit=count)

    async def get_first_messages(self, thread_id: str, count: int) -> list[Message]:
        """Oldest *count* messages, oldest first.

        Reads from the list tail, where the earliest appends sit.
        """
        if count <= 0:
            return []
        message_ids = await self._backend.lrange(
            thread_messages_key(thread_id), -count, -1
        )
        return await self._resolve(thread_id, list(reversed(message_ids)))

    async def purge_messages(self, thread_id: str) -> int:
        """DEL every ``message:{id}`` hash listed for *thread_id*.

        The id list itself is left for :meth:`ThreadStore.delete_thread`.
        Returns the number of message hashes removed.
        """
        message_ids = await self._backend.lrange(thread_messages_key(thread_id), 0, -1)
        if not message_ids:
            return 0
        return await self._backend.delete(*(message_key(mid) for mid in message_ids))

    # -- Internals ------------------------------------------------------------

    async def _resolve(self, thread_id: str, message_ids: list[str]) -> list[Message]:
        if not message_ids:
            return []
        keys = [message_key(mid) for mid in message_ids]
        hashes = await asyncio.gather(*(self._backend.hgetall(k) for k in keys))
        messages = [
            Message.from_hash(key, data)
            for key, data in zip(keys, hashes)
            if data
        ]
        if len(messages) < len(message_ids):
            logger.debug(
                "Skipped %d unresolved message ids in thread %s",
                len(message_ids) - len(messages),
                thread_id,
            )
        return messages
