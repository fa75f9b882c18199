"""Backend key layout.

Layout::

    thread:{id}                    -> hash
    resource:{resourceId}:threads  -> set of thread ids
    thread:{id}:messages           -> list of message ids, newest at head
    message:{id}                   -> hash
"""
from __future__ import annotations


def thread_key(thread_id: str) -> str:
    return f"thread:{thread_id}"


def resource_threads_key(resource_id: str) -> str:
    return f"resource:{resource_id}:threads"


def thread_messages_key(thread_id: str) -> str:
    return f"thread:{thread_id}:messages"


def message_key(message_id: str) -> str:
    return f"message:{message_id}"
