"""
docmodel Cache Module

Best-effort side caches and the write-through CacheLayer.
"""

from .base import Cache
from .memory import MemoryCache
from .redis_cache import RedisCache
from .layer import CacheLayer

__all__ = ["Cache", "MemoryCache", "RedisCache", "CacheLayer"]
