"""
Cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

Only the admin dashboard snapshot is cached. Geolocation records are never
cached: each tracked visit resolves its IP fresh.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations involve I/O (network for Redis).
    Cache errors are never fatal: a failing backend behaves like a miss.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found / expired
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = 60) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key from cache. True if something was deleted."""
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.

    Shared between server processes, so every worker sees the same
    dashboard snapshot.
    """

    def __init__(self, redis_client):
        """
        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(key)
            return value.decode("utf-8") if value else None
        except Exception as e:
            logger.warning("Redis get error: %s", e)
            return None

    async def set(self, key: str, value: str, ttl: int = 60) -> bool:
        try:
            return bool(self.redis.setex(key, ttl, value))
        except Exception as e:
            logger.warning("Redis set error: %s", e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self.redis.delete(key))
        except Exception as e:
            logger.warning("Redis delete error: %s", e)
            return False


class InMemoryCache(CacheStrategy):
    """
    In-memory cache using a dict of (expires_at, value).

    Per-process only and lost on restart. Expired entries are dropped
    lazily on read.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[float, str]] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        if entry is None:
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._cache[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int = 60) -> bool:
        self._cache[key] = (self._clock() + ttl, value)
        return True

    async def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Used when caching is disabled and in tests.
    """

    async def get(self, key: str) -> Optional[str]:
        """Always a miss"""
        return None

    async def set(self, key: str, value: str, ttl: int = 60) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True
