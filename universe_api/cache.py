"""Redis cache for room lookups, with graceful degradation.

Only the output of the database-side room functions is cached; accounts,
sessions and items always come straight from the database.
"""

import json
from typing import Any, Optional

from redis import asyncio as aioredis

from .config import settings
from .logger import logger

ROOMS_FREE_PREFIX = "rooms:free"
ROOMS_AT_PREFIX = "rooms:at"
ROOMS_SCHEDULE_PREFIX = "rooms:schedule"
ROOMS_OCCUPIED_PREFIX = "rooms:occupied"


def make_cache_key(prefix: str, *parts: Any) -> str:
    """Join a namespace prefix and identifying parts, e.g. ``rooms:at:B101:1:09:00:00``.
    None parts are written as ``-`` so optional filters stay distinguishable.
    """
    return ":".join([prefix, *("-" if p is None else str(p) for p in parts)])


class CacheManager:
    """Wraps one Redis client. Every operation is a no-op when Redis is unavailable."""

    def __init__(self):
        self._redis: Optional[aioredis.Redis] = None

    @property
    def available(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        if self._redis is not None:
            return
        try:
            self._redis = aioredis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await self._redis.ping()
            logger.info("[cache] Connected to Redis")
        except Exception as e:
            logger.error(f"[cache] Failed to connect to Redis: {e}")
            self._redis = None

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("[cache] Disconnected from Redis")

    async def get(self, key: str) -> Optional[dict]:
        if self._redis is None:
            return None
        try:
            value = await self._redis.get(key)
        except Exception as e:
            logger.error(f"[cache] Error getting key {key}: {e}")
            return None
        if value is None:
            logger.debug(f"[cache] MISS: {key}")
            return None
        logger.debug(f"[cache] HIT: {key}")
        return json.loads(value)

    async def set(self, key: str, value: dict, ttl: Optional[int] = None) -> bool:
        if self._redis is None:
            return False
        ttl = ttl or settings.ROOM_CACHE_TTL
        try:
            await self._redis.setex(key, ttl, json.dumps(value, default=str))
        except Exception as e:
            logger.error(f"[cache] Error setting key {key}: {e}")
            return False
        logger.debug(f"[cache] SET: {key} (TTL={ttl}s)")
        return True

    async def health_check(self) -> bool:
        if self._redis is None:
            return False
        try:
            await self._redis.ping()
            return True
        except Exception:
            return False


cache_manager = CacheManager()
