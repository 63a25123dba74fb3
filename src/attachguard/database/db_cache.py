"""
Expiry-bounded caches for configuration records.

Both backends share one small interface and never raise: a lookup returns a
:class:`CacheResult` that is either a hit carrying the stored string or a
miss whose reason is ``"absent"`` or ``"error"``; writes and deletes return
``True``/``False``. Callers branch on those values instead of catching
exceptions.

- :class:`RedisCacheClient`: shared cache on a Redis server (``redis.asyncio``).
- :class:`MemoryTTLCache`: in-process TTL dictionary for single-process
  deployments and tests.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Literal, Optional, Tuple

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from attachguard.util.logger import get_logger

logger = get_logger("database_cache")

MissReason = Literal["absent", "error"]


@dataclass(slots=True, frozen=True)
class CacheResult:
    """Outcome of a cache lookup."""

    value: Optional[str] = None
    miss_reason: Optional[MissReason] = None

    @property
    def hit(self) -> bool:
        return self.miss_reason is None

    @classmethod
    def found(cls, value: str) -> "CacheResult":
        return cls(value=value)

    @classmethod
    def absent(cls) -> "CacheResult":
        return cls(miss_reason="absent")

    @classmethod
    def error(cls) -> "CacheResult":
        return cls(miss_reason="error")


class CacheClient:
    """Interface shared by the cache backends."""

    async def get(self, key: str) -> CacheResult:
        raise NotImplementedError

    async def set_with_ttl(self, key: str, ttl_seconds: int, value: str) -> bool:
        raise NotImplementedError

    async def delete(self, key: str) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryTTLCache(CacheClient):
    """
    TTL-based in-process cache.

    Entries are stored with their expiry time and dropped lazily on the next
    lookup after they expire.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Monotonic time source, injectable for tests.
        """
        self._cache: Dict[str, Tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> CacheResult:
        entry = self._cache.get(key)
        if entry is None:
            return CacheResult.absent()

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            logger.debug("[CACHE] Expired key: %s", key)
            return CacheResult.absent()

        logger.debug("[CACHE] Hit for key: %s", key)
        return CacheResult.found(value)

    async def set_with_ttl(self, key: str, ttl_seconds: int, value: str) -> bool:
        self._cache[key] = (self._clock() + ttl_seconds, value)
        logger.debug("[CACHE] Set key: %s (ttl=%ss)", key, ttl_seconds)
        return True

    async def delete(self, key: str) -> bool:
        self._cache.pop(key, None)
        return True

    def get_cache_stats(self) -> Dict[str, int]:
        return {"size": len(self._cache)}


class RedisCacheClient(CacheClient):
    """Cache backed by a Redis server. Connection or command errors become values."""

    def __init__(self, client: aioredis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheClient":
        """Create a client for ``url``. Connecting is lazy; nothing is awaited here."""
        return cls(aioredis.from_url(url, decode_responses=True))

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.warning("[CACHE] Redis ping failed: %s", exc)
            return False

    async def get(self, key: str) -> CacheResult:
        try:
            value = await self._client.get(key)
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.debug("[CACHE] Redis GET failed for %s: %s", key, exc)
            return CacheResult.error()

        if value is None:
            return CacheResult.absent()
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return CacheResult.found(value)

    async def set_with_ttl(self, key: str, ttl_seconds: int, value: str) -> bool:
        try:
            await self._client.setex(key, ttl_seconds, value)
            return True
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.debug("[CACHE] Redis SETEX failed for %s: %s", key, exc)
            return False

    async def delete(self, key: str) -> bool:
        try:
            await self._client.delete(key)
            return True
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.warning("[CACHE] Redis DEL failed for %s: %s", key, exc)
            return False

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except (RedisError, OSError) as exc:
            logger.warning("[CACHE] Error closing Redis client: %s", exc)
