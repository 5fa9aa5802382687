"""
docmodel Cache - Memory Backend

In-process cache with optional TTL, for development, tests and single
process deployments.
"""

import logging
import threading
import time
from typing import Dict, Optional

from ..core.errors import CacheMissError
from .base import Cache

logger = logging.getLogger(__name__)


class MemoryCache(Cache):
    """
    Dictionary backed cache.

    Expired entries are dropped lazily on access and by cleanup_expired().
    """

    def __init__(self, default_ttl: Optional[int] = None):
        self.default_ttl = default_ttl
        self._data: Dict[str, bytes] = {}
        self._expiry: Dict[str, float] = {}
        self._lock = threading.RLock()

    def _expired(self, key: str) -> bool:
        return key in self._expiry and time.time() > self._expiry[key]

    def get(self, key: str) -> bytes:
        with self._lock:
            if self._expired(key):
                self._data.pop(key, None)
                self._expiry.pop(key, None)
            if key not in self._data:
                raise CacheMissError(f"Cache miss for {key}")
            return self._data[key]

    def set(self, key: str, value: bytes, ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        with self._lock:
            self._data[key] = bytes(value)
            if ttl:
                self._expiry[key] = time.time() + ttl
            else:
                self._expiry.pop(key, None)

    def delete(self, key: str) -> bool:
        with self._lock:
            existed = key in self._data
            self._data.pop(key, None)
            self._expiry.pop(key, None)
            return existed

    def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            now = time.time()
            expired = [key for key, expiry in self._expiry.items() if now > expiry]
            for key in expired:
                self._data.pop(key, None)
                self._expiry.pop(key, None)
        if expired:
            logger.debug(f"MemoryCache: cleaned up {len(expired)} expired entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
