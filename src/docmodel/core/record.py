"""
Record metadata and the Modelable base class.

Every persistable instance embeds a Record holding its registration flag,
its store key, its type Descriptor and its ReferenceMap. The persistable
capability is the pair get_record()/set_record(); the registrar and the
persister depend on nothing else.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, Field, PrivateAttr
from pydantic_core import PydanticUndefined

from .keys import Key

if TYPE_CHECKING:
    from .structure import Descriptor

TAG_DOMAIN = "model"


def is_persistable(obj: Any) -> bool:
    """True if obj (an instance or a class) exposes the persistable capability."""
    return callable(getattr(obj, "get_record", None)) and callable(getattr(obj, "set_record", None))


def ModelField(default: Any = PydanticUndefined, *, tag: str = "", **kwargs: Any) -> Any:
    """
    pydantic Field carrying a persistence directive tag.

    Args:
        default: Field default, as for pydantic.Field
        tag: Comma separated directive string, e.g. "skip" or "noindex"
        **kwargs: Passed through to pydantic.Field

    Example:
        class Person(Modelable):
            name: str = ""
            session_token: str = ModelField("", tag="skip")
    """
    extra = dict(kwargs.pop("json_schema_extra", None) or {})
    extra[TAG_DOMAIN] = tag
    return Field(default, json_schema_extra=extra, **kwargs)


class ReferenceMap:
    """
    Ordered mapping of field index to field name for nested persistable fields.

    The map stores positions in the owning type's descriptor, never the child
    objects themselves; children are resolved from the owner's fields when the
    map is traversed.
    """

    def __init__(self, entries: Optional[Dict[int, str]] = None):
        self._entries: Dict[int, str] = dict(sorted((entries or {}).items()))

    def add(self, index: int, field_name: str) -> None:
        self._entries[index] = field_name
        self._entries = dict(sorted(self._entries.items()))

    def items(self) -> Iterator[Tuple[int, str]]:
        return iter(list(self._entries.items()))

    def __contains__(self, index: object) -> bool:
        return index in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ReferenceMap) and self._entries == other._entries

    def __repr__(self) -> str:
        return f"ReferenceMap({self._entries!r})"


@dataclass
class Record:
    """Persistence metadata owned by exactly one modelable instance."""

    registered: bool = False
    key: Optional[Key] = None
    descriptor: Optional['Descriptor'] = None
    references: ReferenceMap = field(default_factory=ReferenceMap)

    @property
    def id(self) -> int:
        """Numeric id of the stored entity, -1 if the record has no key."""
        if self.key is None or self.key.id is None:
            return -1
        return self.key.id

    @property
    def name(self) -> str:
        """Kind of the modelable this record describes."""
        return self.descriptor.name if self.descriptor else ""

    @property
    def encoded_key(self) -> str:
        if self.key is None:
            return ""
        return self.key.encode()


class Modelable(BaseModel):
    """
    Base class for persistable records.

    Nested Modelable fields are owned references: they are created, updated
    and read together with the instance that holds them. Set __kind__ on a
    subclass to persist it under a name other than the class name.
    """

    _record: Record = PrivateAttr(default_factory=Record)

    def get_record(self) -> Record:
        return self._record

    def set_record(self, record: Record) -> None:
        self._record = record

    def is_registered(self) -> bool:
        return self._record.registered
