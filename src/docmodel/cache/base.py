"""
docmodel Cache - Base Classes

Abstract interface for the best-effort side caches used by the CacheLayer.
"""

from abc import ABC, abstractmethod
from typing import Optional


class Cache(ABC):
    """
    Abstract byte cache keyed by string.

    Implementations raise CacheMissError when a key holds no value and
    CacheError for any other failure.
    """

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Return the bytes stored under key.

        Raises:
            CacheMissError: if nothing is stored under key
            CacheError: if the cache could not be consulted
        """
        pass

    @abstractmethod
    def set(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        """
        Store value under key.

        Args:
            key: Cache key
            value: Bytes to store
            ttl: Time-to-live in seconds, None to use the cache default
        """
        pass

    def close(self) -> None:
        """Release resources held by the cache."""
        pass
