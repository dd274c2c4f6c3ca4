"""
Picks the cache that holds the admin dashboard snapshot.

Redis lets several server processes share one snapshot. When Redis is
configured but unreachable at startup the dashboard still works, each
process just caches its own copy in memory.
"""

import logging
from enum import Enum

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from tracker_app.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Values accepted by settings.cache_backend"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


class CacheFactory:
    """Builds the snapshot cache once per process."""

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == CacheBackend.REDIS:
            cls._instance = cls._connect_redis()
        elif backend == CacheBackend.MEMORY:
            cls._instance = InMemoryCache()
        elif backend == CacheBackend.NULL:
            cls._instance = NullCache()
        else:
            raise ValueError(f"Unknown cache backend: {backend}")

        logger.info("Dashboard cache: %s", type(cls._instance).__name__)
        return cls._instance

    @staticmethod
    def _connect_redis() -> CacheStrategy:
        import redis

        client = redis.from_url(
            settings.redis_url,
            decode_responses=False,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            client.ping()
        except redis.RedisError as e:
            logger.warning("Redis unreachable at %s (%s), caching dashboard in memory", settings.redis_url, e)
            return InMemoryCache()
        return RedisCache(client)

    @classmethod
    def clear_instance(cls):
        """Forget the built cache (tests switch backends)"""
        cls._instance = None
