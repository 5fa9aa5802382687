"""
Property codec.

Converts registered modelables to and from the property lists the primary
store persists, and to and from the JSON snapshots the cache holds.
Reference fields are stored in their parent as the child's encoded key;
the child's own values live in the child's entity.
"""

import json
import logging
from typing import Any, Dict

from ..persistence.base import Entity, Property
from .errors import InvalidStateError
from .keys import Key
from .record import Record, is_persistable
from .registrar import references

logger = logging.getLogger(__name__)


def _registered_record(instance: Any) -> Record:
    record = instance.get_record()
    if not record.registered or record.descriptor is None:
        raise InvalidStateError(f"Modelable {type(instance).__name__} is not registered")
    return record


def _reference_key(child: Any) -> Any:
    if child is None or not is_persistable(child):
        return None
    record = child.get_record()
    if not record.registered or record.key is None:
        return None
    return record.key.encode()


def to_entity(instance: Any) -> Entity:
    """Build the property list for instance from its non-skip fields."""
    record = _registered_record(instance)
    properties = []
    for spec in record.descriptor.fields:
        if spec.skipped:
            continue
        value = getattr(instance, spec.name, None)
        if spec.reference_type is not None:
            stored = _reference_key(value)
        else:
            stored = spec.adapter.dump_python(value, mode="json")
        properties.append(Property(name=spec.name, value=stored, indexed=spec.indexed))
    return Entity(properties=properties)


def load_entity(instance: Any, entity: Entity) -> None:
    """
    Assign the stored values of entity onto instance.

    Skip fields and properties the type no longer declares are ignored. A
    registered reference takes the key stored in its parent, replacing any
    key it had; a null stored reference leaves it without a key.
    """
    record = _registered_record(instance)
    for prop in entity.properties:
        spec = record.descriptor.field_by_name(prop.name)
        if spec is None or spec.skipped:
            continue

        if spec.reference_type is None:
            setattr(instance, spec.name, spec.adapter.validate_python(prop.value))
            continue

        child = getattr(instance, spec.name, None)
        if child is None or not is_persistable(child):
            continue
        child_record = child.get_record()
        if child_record.registered:
            child_record.key = Key.decode(prop.value) if prop.value is not None else None


def _snapshot(instance: Any) -> Dict[str, Any]:
    record = _registered_record(instance)
    nested = {}
    for index, child in references(instance):
        if child.get_record().registered:
            nested[record.descriptor.field_by_index(index).name] = _snapshot(child)
    return {
        "key": record.encoded_key or None,
        "properties": to_entity(instance).to_list(),
        "references": nested,
    }


def dump_snapshot(instance: Any) -> bytes:
    """Serialize instance and its registered references for the cache."""
    return json.dumps(_snapshot(instance), separators=(",", ":")).encode("utf-8")


def _restore(instance: Any, data: Dict[str, Any]) -> None:
    record = _registered_record(instance)
    if data.get("key"):
        record.key = Key.decode(data["key"])
    load_entity(instance, Entity.from_list(data.get("properties", [])))

    nested = data.get("references", {})
    for index, child in references(instance):
        name = record.descriptor.field_by_index(index).name
        if name in nested and child.get_record().registered:
            _restore(child, nested[name])


def load_snapshot(instance: Any, data: bytes) -> None:
    """Inverse of dump_snapshot(). Raises ValueError on malformed data."""
    try:
        document = json.loads(data)
    except (TypeError, UnicodeDecodeError) as e:
        raise ValueError(f"Malformed cache snapshot: {e}") from e
    if not isinstance(document, dict):
        raise ValueError("Malformed cache snapshot: expected an object")
    _restore(instance, document)
