"""
docmodel Persistence Layer - Memory Backend

In-memory primary store for development and testing. Data is lost when
the process exits.
"""

import copy
import logging
import threading
from collections import defaultdict
from typing import Callable, Dict, Optional, Set, Tuple

from ..core.errors import EntityNotFoundError, TransactionConflictError, TransactionError
from ..core.keys import Key
from .base import Datastore, Entity, EntityAccess, T, TransactionOptions

logger = logging.getLogger(__name__)

# Most entity groups a cross-group transaction may touch
MAX_CROSS_GROUP_ENTITIES = 25


class MemoryTransaction(EntityAccess):
    """
    Optimistic transaction over a MemoryDatastore.

    Writes are buffered until commit. Every key read or written remembers the
    version it had when first touched; commit fails if any of them moved.
    Each root key is its own entity group.
    """

    def __init__(self, store: 'MemoryDatastore', options: TransactionOptions):
        self._store = store
        self._options = options
        self._versions: Dict[Key, int] = {}
        self._writes: Dict[Key, Entity] = {}
        self._groups: Set[Key] = set()

    def _touch(self, key: Key) -> None:
        if key not in self._groups:
            self._groups.add(key)
            if not self._options.cross_group and len(self._groups) > 1:
                raise TransactionError("Operating on too many entity groups in a single transaction")
            if len(self._groups) > MAX_CROSS_GROUP_ENTITIES:
                raise TransactionError(
                    f"Cross-group transaction touches more than {MAX_CROSS_GROUP_ENTITIES} entity groups"
                )
        if key not in self._versions:
            self._versions[key] = self._store._version(key)

    def put(self, key: Key, entity: Entity) -> Key:
        if not key.is_complete:
            key = self._store._allocate(key.kind)
        self._touch(key)
        self._writes[key] = copy.deepcopy(entity)
        return key

    def get(self, key: Key) -> Entity:
        self._touch(key)
        if key in self._writes:
            return copy.deepcopy(self._writes[key])
        return self._store.get(key)

    def commit(self) -> None:
        self._store._commit(self._versions, self._writes)


class MemoryDatastore(Datastore):
    """
    Thread-safe in-memory primary store.

    Ids are allocated per kind starting at 1, like a fresh datastore.
    """

    def __init__(self):
        self._entities: Dict[Key, Tuple[Entity, int]] = {}
        self._next_ids: Dict[str, int] = defaultdict(lambda: 1)
        self._lock = threading.RLock()
        logger.info("MemoryDatastore initialized")

    def _allocate(self, kind: str) -> Key:
        with self._lock:
            entity_id = self._next_ids[kind]
            self._next_ids[kind] = entity_id + 1
        return Key(kind=kind, id=entity_id)

    def _version(self, key: Key) -> int:
        with self._lock:
            stored = self._entities.get(key)
            return stored[1] if stored else 0

    def _commit(self, versions: Dict[Key, int], writes: Dict[Key, Entity]) -> None:
        with self._lock:
            for key, version in versions.items():
                if self._version(key) != version:
                    raise TransactionConflictError(f"Concurrent modification of {key}")
            for key, entity in writes.items():
                self._write(key, entity)

    def _write(self, key: Key, entity: Entity) -> None:
        version = self._version(key) + 1
        if key.id is not None and key.id >= self._next_ids[key.kind]:
            self._next_ids[key.kind] = key.id + 1
        self._entities[key] = (copy.deepcopy(entity), version)

    def put(self, key: Key, entity: Entity) -> Key:
        if not key.is_complete:
            key = self._allocate(key.kind)
        with self._lock:
            self._write(key, entity)
        logger.debug(f"Stored entity {key}")
        return key

    def get(self, key: Key) -> Entity:
        with self._lock:
            stored = self._entities.get(key)
        if stored is None:
            raise EntityNotFoundError(f"No entity stored for key {key}")
        return copy.deepcopy(stored[0])

    def run_in_transaction(self, fn: Callable[[EntityAccess], T],
                           options: Optional[TransactionOptions] = None) -> T:
        options = options or TransactionOptions()
        attempts = max(1, options.attempts)
        conflict: Optional[TransactionConflictError] = None

        for attempt in range(1, attempts + 1):
            tx = MemoryTransaction(self, options)
            result = fn(tx)
            try:
                tx.commit()
                return result
            except TransactionConflictError as e:
                conflict = e
                logger.info(f"Transaction attempt {attempt}/{attempts} conflicted: {e}")

        raise conflict

    def exists(self, key: Key) -> bool:
        with self._lock:
            return key in self._entities

    def clear(self) -> None:
        with self._lock:
            self._entities.clear()
            self._next_ids.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entities)
