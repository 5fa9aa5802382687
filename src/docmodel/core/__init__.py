"""
docmodel Core Module

Record metadata, keys, the structure registry, the registrar and the
property codec.
"""

from .errors import (
    ModelError, InvalidStateError, AlreadyCreatedError, MissingKeyError,
    SchemaError, UnaddressableFieldError, StoreError, EntityNotFoundError,
    TransactionError, TransactionConflictError, CacheError, CacheMissError,
)
from .keys import Key
from .record import Modelable, ModelField, Record, ReferenceMap, is_persistable
from .structure import Descriptor, Directive, FieldSpec, StructureRegistry, default_registry, parse_directive
from .registrar import register, reregister, references
from .codec import to_entity, load_entity, dump_snapshot, load_snapshot

__all__ = [
    "ModelError", "InvalidStateError", "AlreadyCreatedError", "MissingKeyError",
    "SchemaError", "UnaddressableFieldError", "StoreError", "EntityNotFoundError",
    "TransactionError", "TransactionConflictError", "CacheError", "CacheMissError",
    "Key",
    "Modelable", "ModelField", "Record", "ReferenceMap", "is_persistable",
    "Descriptor", "Directive", "FieldSpec", "StructureRegistry", "default_registry", "parse_directive",
    "register", "reregister", "references",
    "to_entity", "load_entity", "dump_snapshot", "load_snapshot",
]
