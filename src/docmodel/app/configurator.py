"""
Engine Configurator

Configuration dataclasses and the factory that wires a primary store, a
cache and a Persister together.
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..cache.base import Cache
from ..cache.layer import CacheLayer
from ..cache.memory import MemoryCache
from ..cache.redis_cache import RedisCache
from ..core.structure import StructureRegistry
from ..persistence.base import Datastore
from ..persistence.memory import MemoryDatastore
from ..persistence.sql import SQLDatastore
from .persister import Persister

logger = logging.getLogger(__name__)

STORE_BACKENDS = ("memory", "sql")
CACHE_BACKENDS = ("memory", "redis", "none")

_log_handler: Optional[logging.Handler] = None


@dataclass
class StoreConfig:
    """Primary store configuration"""
    backend: str = "memory"
    url: str = "sqlite:///docmodel.db"
    echo: bool = False


@dataclass
class CacheConfig:
    """Cache configuration"""
    backend: str = "memory"
    url: str = "redis://localhost:6379/0"
    ttl: Optional[int] = None


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class EngineConfig:
    """Complete engine configuration"""
    store: StoreConfig = field(default_factory=StoreConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: Optional[LoggingConfig] = None

    def validate(self) -> None:
        if self.store.backend not in STORE_BACKENDS:
            raise ValueError(f"Unknown store backend: {self.store.backend}")
        if self.cache.backend not in CACHE_BACKENDS:
            raise ValueError(f"Unknown cache backend: {self.cache.backend}")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'EngineConfig':
        """Create configuration from a dictionary of section dictionaries"""
        config = cls()
        if "logging" in config_dict:
            config.logging = LoggingConfig()
        for section in ("store", "cache", "logging"):
            for key, value in config_dict.get(section, {}).items():
                target = getattr(config, section)
                if not hasattr(target, key):
                    raise ValueError(f"Unknown {section} option: {key}")
                setattr(target, key, value)
        config.validate()
        return config

    @classmethod
    def from_environment(cls) -> 'EngineConfig':
        """Create configuration from DOCMODEL_* environment variables"""
        config = cls()

        if os.getenv('DOCMODEL_STORE'):
            config.store.backend = os.getenv('DOCMODEL_STORE')

        if os.getenv('DOCMODEL_DATABASE_URL'):
            config.store.url = os.getenv('DOCMODEL_DATABASE_URL')

        if os.getenv('DOCMODEL_SQL_ECHO'):
            config.store.echo = os.getenv('DOCMODEL_SQL_ECHO').lower() == 'true'

        if os.getenv('DOCMODEL_CACHE'):
            config.cache.backend = os.getenv('DOCMODEL_CACHE')

        if os.getenv('DOCMODEL_REDIS_URL'):
            config.cache.url = os.getenv('DOCMODEL_REDIS_URL')

        if os.getenv('DOCMODEL_CACHE_TTL'):
            config.cache.ttl = int(os.getenv('DOCMODEL_CACHE_TTL'))

        if os.getenv('DOCMODEL_LOG_LEVEL'):
            config.logging = LoggingConfig(level=os.getenv('DOCMODEL_LOG_LEVEL').upper())

        config.validate()
        return config


def configure_logging(config: LoggingConfig) -> None:
    """
    Attach a stream handler with the configured format to the docmodel logger.

    Only called when logging is configured explicitly; otherwise handlers are
    left to the application.
    """
    global _log_handler
    package_logger = logging.getLogger("docmodel")
    package_logger.setLevel(config.level)
    if _log_handler is None:
        _log_handler = logging.StreamHandler()
        package_logger.addHandler(_log_handler)
    _log_handler.setFormatter(logging.Formatter(config.format))


def build_store(config: StoreConfig) -> Datastore:
    if config.backend == "sql":
        return SQLDatastore(url=config.url, echo=config.echo)
    return MemoryDatastore()


def build_cache(config: CacheConfig) -> Optional[Cache]:
    if config.backend == "none":
        return None
    if config.backend == "redis":
        return RedisCache(url=config.url, default_ttl=config.ttl)
    return MemoryCache(default_ttl=config.ttl)


def configure_persister(config: Optional[EngineConfig] = None,
                        registry: Optional[StructureRegistry] = None) -> Persister:
    """
    Build a Persister from configuration.

    Example:
        persister = configure_persister(EngineConfig.from_environment())
        register(person)
        persister.create(person)
    """
    config = config or EngineConfig()
    config.validate()
    if config.logging is not None:
        configure_logging(config.logging)

    store = build_store(config.store)
    cache = build_cache(config.cache)
    cache_layer = CacheLayer(cache, ttl=config.cache.ttl) if cache is not None else None

    logger.info(f"Persister configured: store={config.store.backend}, cache={config.cache.backend}")
    return Persister(store, cache_layer=cache_layer, registry=registry)


_default_persister: Optional[Persister] = None
_default_lock = threading.Lock()


def set_persister(persister: Optional[Persister]) -> None:
    """Replace the process default persister"""
    global _default_persister
    with _default_lock:
        _default_persister = persister


def get_persister() -> Persister:
    """Get the process default persister, building it from the environment on first use"""
    global _default_persister
    with _default_lock:
        if _default_persister is None:
            _default_persister = configure_persister(EngineConfig.from_environment())
        return _default_persister
