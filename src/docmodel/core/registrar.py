"""
Registrar

Registers modelable instances with the engine: resolves the type
descriptor, registers nested persistable fields recursively, builds the
instance's ReferenceMap and installs its Record.
"""

import logging
from typing import Any, Iterator, Optional, Tuple

from .errors import SchemaError
from .record import Record, ReferenceMap, is_persistable
from .structure import Descriptor, StructureRegistry, default_registry

logger = logging.getLogger(__name__)


def _map_references(instance: Any, registry: StructureRegistry) -> Tuple[Descriptor, ReferenceMap]:
    if not is_persistable(instance):
        raise SchemaError(f"{type(instance).__name__} does not implement get_record/set_record")

    descriptor = registry.describe(type(instance))
    references = ReferenceMap()

    for spec in descriptor.fields:
        if spec.skipped or spec.reference_type is None:
            continue
        value = getattr(instance, spec.name, None)
        if value is not None and is_persistable(value):
            register(value, registry)
            references.add(spec.index, spec.name)

    return descriptor, references


def register(instance: Any, registry: Optional[StructureRegistry] = None) -> None:
    """
    Register instance and its references with the engine.

    Calling create, update or read on an unregistered modelable is an error.
    Registering an already registered instance registers any new nested
    values but leaves the instance's own Record untouched; use reregister()
    to refresh its reference map.
    """
    registry = registry or default_registry
    descriptor, references = _map_references(instance, registry)

    record = instance.get_record()
    if record.registered:
        return

    instance.set_record(Record(
        registered=True,
        key=record.key,
        descriptor=descriptor,
        references=references,
    ))
    logger.debug(f"Registered modelable {descriptor.name} with {len(references)} references")


def reregister(instance: Any, registry: Optional[StructureRegistry] = None) -> None:
    """
    Rebuild the reference map of instance from its current field values.

    The record's key is kept. On an unregistered instance this is the same
    as register().
    """
    registry = registry or default_registry
    record = instance.get_record()
    if not record.registered:
        register(instance, registry)
        return

    descriptor, references = _map_references(instance, registry)
    record.descriptor = descriptor
    record.references = references
    logger.debug(f"Refreshed references of {descriptor.name}: {references!r}")


def references(instance: Any) -> Iterator[Tuple[int, Any]]:
    """Yield (field index, child) pairs for the references of instance, in index order."""
    record = instance.get_record()
    for index, field_name in record.references.items():
        child = getattr(instance, field_name, None)
        if child is not None and is_persistable(child):
            yield index, child
