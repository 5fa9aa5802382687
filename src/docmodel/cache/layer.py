"""
Cache Layer

Write-through, best-effort cache of root modelables keyed by their encoded
store key. Every failure is logged and reported as False; nothing raised by
the cache collaborator or the snapshot codec ever reaches the caller.
"""

import logging
from typing import Any, Optional

from ..core.codec import dump_snapshot, load_snapshot
from ..core.errors import CacheMissError
from .base import Cache

logger = logging.getLogger(__name__)


class CacheLayer:
    """Puts and gets whole modelable graphs through a Cache collaborator."""

    def __init__(self, cache: Cache, ttl: Optional[int] = None):
        self.cache = cache
        self.ttl = ttl

    def put(self, instance: Any) -> bool:
        """Cache instance under its key. Returns False if nothing was cached."""
        encoded_key = instance.get_record().encoded_key
        if not encoded_key:
            logger.error(f"Cannot cache modelable {type(instance).__name__} without a key")
            return False
        try:
            self.cache.set(encoded_key, dump_snapshot(instance), self.ttl)
        except Exception as e:
            logger.error(f"Error saving {encoded_key} in cache: {e}")
            return False
        logger.debug(f"Cached modelable {encoded_key}")
        return True

    def get(self, instance: Any) -> bool:
        """
        Populate instance from the cache entry for its key.

        Returns:
            True on a hit, False on a miss or any cache failure
        """
        encoded_key = instance.get_record().encoded_key
        if not encoded_key:
            return False
        try:
            data = self.cache.get(encoded_key)
        except CacheMissError:
            logger.debug(f"Cache miss for {encoded_key}")
            return False
        except Exception as e:
            logger.error(f"Error loading {encoded_key} from cache: {e}")
            return False

        try:
            load_snapshot(instance, data)
        except Exception as e:
            logger.error(f"Discarding unreadable cache entry {encoded_key}: {e}")
            return False
        logger.debug(f"Cache hit for {encoded_key}")
        return True
