"""
docmodel Persistence Module

Primary store contract and its memory and SQL implementations.
"""

from .base import Datastore, Entity, EntityAccess, Property, TransactionOptions
from .memory import MemoryDatastore, MemoryTransaction
from .sql import SQLDatastore, SQLTransaction, EntityRow

__all__ = [
    "Datastore",
    "Entity",
    "EntityAccess",
    "Property",
    "TransactionOptions",
    "MemoryDatastore",
    "MemoryTransaction",
    "SQLDatastore",
    "SQLTransaction",
    "EntityRow",
]
