"""Configuration for coach_memory.

Override via environment variables:
    REDIS_URL                      — backend URL (default: redis://localhost:6379/0)
    COACH_MEMORY_LAST_MESSAGES     — default retrieval window (default: 15)
    COACH_MEMORY_SEMANTIC_RECALL   — embedding recall flag (default: false, unsupported)
    COACH_MEMORY_ALL_CAP           — upper bound for "all" queries (default: 1000)
    COACH_MEMORY_PAGE_SIZE         — default get_messages limit (default: 50)
    COACH_MEMORY_ALLOW_FLUSH       — permit whole-store flush (default: false)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

DEFAULT_REDIS_URL = "redis://localhost:6379/0"

_TRUTHY = frozenset({"true", "1", "yes"})


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class MemoryConfig:
    """Immutable configuration for the memory adapter and its stores."""

    redis_url: str = DEFAULT_REDIS_URL

    # Retrieval windows
    last_messages: int = 15
    all_messages_cap: int = 1000
    page_size: int = 50

    # Recall mode: only recency-based recall is implemented
    semantic_recall: bool = False

    # Whole-store flush is destructive across all resources
    allow_flush: bool = False

    @classmethod
    def from_env(cls) -> MemoryConfig:
        """Build config from environment variables with sensible defaults."""
        kwargs: dict[str, Any] = {}
        if v := os.environ.get("REDIS_URL"):
            kwargs["redis_url"] = v
        if v := os.environ.get("COACH_MEMORY_LAST_MESSAGES"):
            kwargs["last_messages"] = int(v)
        if v := os.environ.get("COACH_MEMORY_ALL_CAP"):
            kwargs["all_messages_cap"] = int(v)
        if v := os.environ.get("COACH_MEMORY_PAGE_SIZE"):
            kwargs["page_size"] = int(v)
        if v := os.environ.get("COACH_MEMORY_SEMANTIC_RECALL"):
            kwargs["semantic_recall"] = _as_bool(v)
        if v := os.environ.get("COACH_MEMORY_ALLOW_FLUSH"):
            kwargs["allow_flush"] = _as_bool(v)
        return cls(**kwargs)
