# Copyright (c) 2026 HubPortal Contributors. All Rights Reserved.

"""
TTL Caches — Injected, bounded-lifetime caches for shared read-mostly data.

Two interchangeable backends:
  - TTLCache:      in-process dict, used by default and in tests
  - RedisTTLCache: shared across workers, keys namespaced hub:cache:{key}

Values must be JSON-serialisable so both backends behave the same.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import redis.asyncio as aioredis

logger = logging.getLogger("hub.cache")

DEFAULT_TTL = 300  # 5 min


class TTLCache:
    """In-process cache; entries expire ``ttl`` seconds after they are set."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        self._entries[key] = (value, self._clock() + ttl)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    async def get_or_set(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        """Return the cached value, or await ``fetch`` and cache its result."""
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await fetch()
        await self.set(key, value, ttl)
        return value


class RedisTTLCache(TTLCache):
    """Redis-backed cache shared by every portal worker."""

    PREFIX = "hub:cache:"

    def __init__(self, redis: aioredis.Redis, default_ttl: float = DEFAULT_TTL) -> None:
        super().__init__(default_ttl=default_ttl)
        self._redis = redis

    def _key(self, key: str) -> str:
        return f"{self.PREFIX}{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        await self._redis.set(
            self._key(key),
            json.dumps(value, ensure_ascii=False),
            ex=max(1, int(ttl)),
        )

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def clear(self) -> None:
        async for redis_key in self._redis.scan_iter(match=f"{self.PREFIX}*"):
            await self._redis.delete(redis_key)
        logger.info("Cleared shared cache namespace %s", self.PREFIX)
