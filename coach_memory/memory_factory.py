"""Factory that wires a Redis client, the stores and the adapter together."""
from __future__ import annotations

import logging

from coach_memory.config import MemoryConfig
from coach_memory.memory_adapter import MemoryAdapter
from coach_memory.redis_backend import connect

logger = logging.getLogger(__name__)


def create_memory(config: MemoryConfig | None = None) -> MemoryAdapter:
    """Return a :class:`MemoryAdapter` backed by Redis.

    Uses :meth:`MemoryConfig.from_env` when *config* is omitted.
    """
    config = config or MemoryConfig.from_env()
    adapter = MemoryAdapter(connect(config.redis_url), config=config)
    logger.info("Using Redis memory store at %s", config.redis_url)
    return adapter
