"""
docmodel - Object-to-document mapping for typed records

Registered Modelable instances are created, updated and read together with
their nested Modelable references inside a single store transaction, with a
write-through cache in front of reads.

Example:
    from pydantic import Field
    from docmodel import Modelable, register, configure_persister

    class Address(Modelable):
        street: str = ""

    class Person(Modelable):
        name: str = ""
        home: Address = Field(default_factory=Address)

    persister = configure_persister()
    person = Person(name="Ada", home=Address(street="Main"))
    register(person)
    persister.create(person)
"""

from .core import *
from .core import __all__ as _core_all
from .persistence import Datastore, Entity, Property, TransactionOptions, MemoryDatastore, SQLDatastore
from .cache import Cache, MemoryCache, RedisCache, CacheLayer
from .app import (
    Persister, EngineConfig, StoreConfig, CacheConfig, LoggingConfig,
    configure_logging, configure_persister, get_persister, set_persister,
)

__version__ = "0.1.0"

__all__ = [
    *_core_all,
    # Persistence
    "Datastore",
    "Entity",
    "Property",
    "TransactionOptions",
    "MemoryDatastore",
    "SQLDatastore",
    # Cache
    "Cache",
    "MemoryCache",
    "RedisCache",
    "CacheLayer",
    # Application
    "Persister",
    "EngineConfig",
    "StoreConfig",
    "CacheConfig",
    "LoggingConfig",
    "configure_logging",
    "configure_persister",
    "get_persister",
    "set_persister",
]
