"""Redis client construction for the memory stores."""
from __future__ import annotations

import logging

from redis import asyncio as aioredis

from coach_memory.config import DEFAULT_REDIS_URL

logger = logging.getLogger(__name__)


def connect(redis_url: str = DEFAULT_REDIS_URL) -> aioredis.Redis:
    """Create an async Redis client for *redis_url*.

    Responses are decoded to ``str``.  No connection is opened until the
    first command; no retry policy is installed, so errors surface to the
    caller on the first failure.
    """
    client: aioredis.Redis = aioredis.Redis.from_url(
        redis_url, decode_responses=True
    )
    logger.debug("Created Redis client for %s", redis_url)
    return client
