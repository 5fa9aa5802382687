"""
docmodel Application Layer

The transactional persister and its configurator.
"""

from .persister import Persister, TRANSACTION_OPTIONS
from .configurator import (
    EngineConfig, StoreConfig, CacheConfig, LoggingConfig,
    configure_logging, configure_persister, get_persister, set_persister,
)

__all__ = [
    "Persister",
    "TRANSACTION_OPTIONS",
    "EngineConfig",
    "StoreConfig",
    "CacheConfig",
    "LoggingConfig",
    "configure_logging",
    "configure_persister",
    "get_persister",
    "set_persister",
]
