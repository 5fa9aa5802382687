"""
Structure Registry

Maps a modelable type to a Descriptor exactly once per registry. The
descriptor lists every declared field in order with its persistence
directive and, for nested persistable fields, the referenced type.
"""

import logging
import threading
import types
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter
from pydantic.fields import FieldInfo

from .errors import SchemaError, UnaddressableFieldError
from .record import TAG_DOMAIN, is_persistable

logger = logging.getLogger(__name__)


class Directive(Enum):
    """Persistence directive parsed from a field tag"""
    NONE = ""
    SKIP = "skip"
    SEARCH = "search"
    NOINDEX = "noindex"


_DIRECTIVE_ALIASES = {"-": Directive.SKIP}


def parse_directive(tag: Optional[str]) -> Directive:
    """
    Parse the first comma separated token of a field tag.

    Unrecognised tokens map to Directive.NONE so that tags written for newer
    versions do not break older readers.
    """
    if not tag:
        return Directive.NONE
    token = tag.split(",")[0].strip()
    if token in _DIRECTIVE_ALIASES:
        return _DIRECTIVE_ALIASES[token]
    try:
        return Directive(token)
    except ValueError:
        return Directive.NONE


@dataclass(frozen=True)
class FieldSpec:
    """One declared field of a modelable type"""
    index: int
    name: str
    directive: Directive
    adapter: Optional[TypeAdapter] = None
    reference_type: Optional[type] = None

    @property
    def skipped(self) -> bool:
        return self.directive is Directive.SKIP

    @property
    def indexed(self) -> bool:
        return self.directive is not Directive.NOINDEX


@dataclass(frozen=True)
class Descriptor:
    """Read-only field mapping shared by every instance of a modelable type"""
    name: str
    fields: Tuple[FieldSpec, ...]

    def field_by_index(self, index: int) -> FieldSpec:
        return self.fields[index]

    def field_by_name(self, name: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None

    @property
    def searchable_fields(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.directive is Directive.SEARCH)


def kind_of(model_type: type) -> str:
    """Persisted name of a modelable type."""
    return getattr(model_type, "__kind__", None) or model_type.__name__


def _field_tag(info: FieldInfo) -> str:
    extra = info.json_schema_extra
    if isinstance(extra, dict):
        tag = extra.get(TAG_DOMAIN, "")
        return tag if isinstance(tag, str) else ""
    return ""


def _persistable_type(annotation: Any) -> Optional[type]:
    """Return the persistable class behind an annotation, unwrapping Optional."""
    if isinstance(annotation, type) and is_persistable(annotation):
        return annotation
    if get_origin(annotation) in (Union, types.UnionType):
        candidates = [a for a in get_args(annotation) if a is not type(None)]
        if len(candidates) == 1:
            return _persistable_type(candidates[0])
    return None


class StructureRegistry:
    """
    Process-wide type to Descriptor cache.

    Descriptors are built on first use under a lock, so concurrent first
    registrations of the same type produce a single descriptor.
    """

    def __init__(self):
        self._descriptors: Dict[type, Descriptor] = {}
        self._lock = threading.Lock()

    def describe(self, model_type: Type[BaseModel]) -> Descriptor:
        descriptor = self._descriptors.get(model_type)
        if descriptor is not None:
            return descriptor

        with self._lock:
            descriptor = self._descriptors.get(model_type)
            if descriptor is None:
                descriptor = self._build(model_type)
                self._descriptors[model_type] = descriptor
                logger.debug(f"Mapped structure {descriptor.name} with {len(descriptor.fields)} fields")
        return descriptor

    def is_described(self, model_type: type) -> bool:
        return model_type in self._descriptors

    def clear(self) -> None:
        """Forget every descriptor. Intended for tests."""
        with self._lock:
            self._descriptors.clear()

    def _build(self, model_type: Type[BaseModel]) -> Descriptor:
        model_fields = getattr(model_type, "model_fields", None)
        if model_fields is None:
            raise SchemaError(f"{model_type!r} is not a pydantic model")

        frozen_model = bool(model_type.model_config.get("frozen", False))
        specs = []
        for index, (name, info) in enumerate(model_fields.items()):
            directive = parse_directive(_field_tag(info))
            if directive is Directive.SKIP:
                logger.debug(f"Field {name} of {model_type.__name__} is skippable")

            if directive is not Directive.SKIP and (frozen_model or info.frozen):
                raise UnaddressableFieldError(model_type.__name__, name)

            reference_type = _persistable_type(info.annotation)
            adapter = None
            if reference_type is None and directive is not Directive.SKIP:
                adapter = TypeAdapter(info.rebuild_annotation())

            specs.append(FieldSpec(
                index=index,
                name=name,
                directive=directive,
                adapter=adapter,
                reference_type=reference_type,
            ))

        return Descriptor(name=kind_of(model_type), fields=tuple(specs))


default_registry = StructureRegistry()
