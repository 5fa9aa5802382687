"""
docmodel Cache - Redis Backend

Networked cache shared by every process talking to the same Redis.
"""

import logging
from typing import Optional

import redis

from ..core.errors import CacheError, CacheMissError
from .base import Cache

logger = logging.getLogger(__name__)

KEY_PREFIX = "docmodel:"


class RedisCache(Cache):
    """
    Cache backed by a redis.Redis client.

    Args:
        url: Redis connection URL, used when no client is given
        client: Preconfigured client
        default_ttl: Expiry in seconds applied when set() gets no ttl
        prefix: Namespace prepended to every key
    """

    def __init__(self, url: str = "redis://localhost:6379/0", client: Optional[redis.Redis] = None,
                 default_ttl: Optional[int] = None, prefix: str = KEY_PREFIX):
        self._client = client if client is not None else redis.Redis.from_url(url)
        self.default_ttl = default_ttl
        self.prefix = prefix
        logger.info(f"RedisCache initialized with prefix {prefix!r}")

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> bytes:
        try:
            value = self._client.get(self._key(key))
        except redis.RedisError as e:
            raise CacheError(f"Redis get failed for {key}: {e}") from e
        if value is None:
            raise CacheMissError(f"Cache miss for {key}")
        return value

    def set(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        try:
            self._client.set(self._key(key), value, ex=ttl or None)
        except redis.RedisError as e:
            raise CacheError(f"Redis set failed for {key}: {e}") from e

    def close(self) -> None:
        self._client.close()
        logger.info("RedisCache closed")
