"""
Key-value service used by the tasks cache.

``KeyValueStore`` is the seam the cache components depend on; the service
injects ``RedisKeyValueStore`` and tests inject an in-memory fake.
"""

import asyncio
from typing import Optional, Protocol, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheUnavailableError
from shared.logging import get_logger


class KeyValueStore(Protocol):
    """Minimal key-value contract with optional per-key expiry."""

    async def get(self, key: str) -> Optional[Union[str, bytes]]:
        """Return the stored value or None when absent."""
        ...

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store ``value``; expire it after ``ttl_seconds`` when given."""
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...

    async def ping(self) -> bool:
        """Return True when the service is reachable."""
        ...

    async def close(self) -> None:
        """Release client resources."""
        ...


class RedisKeyValueStore:
    """Redis-backed ``KeyValueStore``.

    Every client fault is re-raised as ``CacheUnavailableError`` so callers
    handle a single error type. Timeouts are the client's job (socket
    timeouts below) and surface the same way.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        socket_timeout: float = 2.0,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.logger = get_logger("tasks.cache.redis")
        self.redis: redis.Redis = client or redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
            health_check_interval=30
        )

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(key)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CacheUnavailableError("Redis get failed", {"key": key, "error": str(e)}) from e

    async def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        try:
            if ttl_seconds is None:
                await self.redis.set(key, value)
            else:
                await self.redis.set(key, value, ex=ttl_seconds)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CacheUnavailableError("Redis put failed", {"key": key, "error": str(e)}) from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CacheUnavailableError("Redis delete failed", {"key": key, "error": str(e)}) from e

    async def ping(self) -> bool:
        """Check Redis health."""
        try:
            return bool(await self.redis.ping())
        except (RedisError, OSError, asyncio.TimeoutError):
            return False

    async def close(self) -> None:
        await self.redis.aclose()
        self.logger.info("Redis connection closed")
