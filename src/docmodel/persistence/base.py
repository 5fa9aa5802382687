"""
docmodel Persistence Layer - Base Classes

This module provides the entity representation and the abstract interface
primary stores implement.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..core.keys import Key

T = TypeVar('T')


@dataclass
class Property:
    """One named value of a stored entity"""
    name: str
    value: Any
    indexed: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value, "indexed": self.indexed}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Property':
        return cls(name=data["name"], value=data.get("value"), indexed=data.get("indexed", True))


@dataclass
class Entity:
    """Property list persisted under a key"""
    properties: List[Property] = field(default_factory=list)

    def get(self, name: str) -> Optional[Property]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def names(self) -> List[str]:
        return [p.name for p in self.properties]

    def to_list(self) -> List[Dict[str, Any]]:
        return [p.to_dict() for p in self.properties]

    @classmethod
    def from_list(cls, data: List[Dict[str, Any]]) -> 'Entity':
        return cls(properties=[Property.from_dict(item) for item in data])


@dataclass(frozen=True)
class TransactionOptions:
    """
    Options for Datastore.run_in_transaction.

    Attributes:
        cross_group: Allow the transaction to touch more than one entity group
        attempts: Number of times the transaction function may be run
    """
    cross_group: bool = False
    attempts: int = 1


class EntityAccess(ABC):
    """Read and write access to entities, either direct or inside a transaction."""

    @abstractmethod
    def put(self, key: Key, entity: Entity) -> Key:
        """
        Store entity under key.

        Args:
            key: Complete key to overwrite, or incomplete key to allocate an id
            entity: Entity to store

        Returns:
            The complete key the entity was stored under
        """
        pass

    @abstractmethod
    def get(self, key: Key) -> Entity:
        """
        Load the entity stored under key.

        Raises:
            EntityNotFoundError: if no entity is stored under key
        """
        pass


class Datastore(EntityAccess):
    """
    Abstract base class for primary stores.

    Implementations must provide direct access plus transactions whose
    function receives an EntityAccess bound to the transaction.
    """

    @abstractmethod
    def run_in_transaction(self, fn: Callable[[EntityAccess], T],
                           options: Optional[TransactionOptions] = None) -> T:
        """
        Run fn inside a transaction and commit if it returns normally.

        Args:
            fn: Function receiving the transactional EntityAccess
            options: Transaction options, defaults to TransactionOptions()

        Returns:
            Whatever fn returns

        Raises:
            TransactionConflictError: if the commit conflicts with another writer
                on every allowed attempt
        """
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        pass
