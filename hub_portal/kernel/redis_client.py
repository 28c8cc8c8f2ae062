# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
Redis Connection Factory — Optional shared backend for portal caches.

When REDIS_URL is empty the portal runs with in-process caches only and
get_redis_pool() returns None.
"""

from __future__ import annotations

from typing import Optional

import redis.asyncio as aioredis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry
from redis.exceptions import (
    ConnectionError,
    TimeoutError,
    BusyLoadingError,
)

from hub_portal.core.config import settings

_pool: Optional[aioredis.Redis] = None

_RETRY = Retry(ExponentialBackoff(cap=2, base=0.1), retries=3)
_RETRY_ERRORS = [ConnectionError, TimeoutError, BusyLoadingError, OSError]


async def get_redis_pool(url: Optional[str] = None) -> Optional[aioredis.Redis]:
    """
    Return a singleton async Redis connection pool, or None if unconfigured.

    Uses retry-on-error so stale pool connections are transparently reconnected.
    """
    global _pool
    url = settings.REDIS_URL if url is None else url
    if _pool is None and url:
        _pool = aioredis.from_url(
            url,
            decode_responses=True,
            max_connections=10,
            health_check_interval=15,
            retry_on_timeout=True,
            retry_on_error=_RETRY_ERRORS,
            retry=_RETRY,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
    return _pool


async def close_redis_pool() -> None:
    """Gracefully close the Redis connection pool."""
    global _pool
    if _pool is not None:
        await _pool.aclose()
        _pool = None


def inject_redis_for_test(redis_instance: Optional[aioredis.Redis]) -> None:
    """Inject a fake/mock Redis instance (for testing only)."""
    global _pool
    _pool = redis_instance
