"""
Persisted entity keys.

A key names one entity in the primary store: the kind (the modelable type
name) and a numeric id assigned by the store. A key without an id is
incomplete and asks the store to allocate one.
"""

import base64
import json
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Key:
    """Immutable (kind, id) pair identifying a stored entity."""

    kind: str
    id: Optional[int] = None

    @classmethod
    def incomplete(cls, kind: str) -> 'Key':
        return cls(kind=kind)

    @property
    def is_complete(self) -> bool:
        return self.id is not None

    def encode(self) -> str:
        """Encode the key as a URL-safe string, usable as a cache key."""
        if not self.is_complete:
            raise ValueError(f"Cannot encode incomplete key for kind {self.kind}")
        raw = json.dumps([self.kind, self.id], separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, encoded: str) -> 'Key':
        """Inverse of encode()."""
        padding = "=" * (-len(encoded) % 4)
        try:
            kind, entity_id = json.loads(base64.urlsafe_b64decode(encoded + padding))
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid encoded key {encoded!r}: {e}") from e
        if not isinstance(kind, str) or not isinstance(entity_id, int):
            raise ValueError(f"Invalid encoded key {encoded!r}")
        return cls(kind=kind, id=entity_id)

    def __str__(self) -> str:
        return f"{self.kind}({self.id if self.is_complete else 'incomplete'})"
