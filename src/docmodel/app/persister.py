"""
Transactional Persister

Creates, updates and reads registered modelables together with their
references. Every public call runs in exactly one cross-group store
transaction with a single attempt; a conflict aborts the whole call and
surfaces to the caller unchanged.
"""

import logging
from typing import Any, List, Optional, Tuple

from ..cache.layer import CacheLayer
from ..core.codec import load_entity, to_entity
from ..core.errors import AlreadyCreatedError, InvalidStateError, MissingKeyError
from ..core.keys import Key
from ..core.record import Record
from ..core.registrar import references, register
from ..core.structure import StructureRegistry, default_registry
from ..persistence.base import Datastore, EntityAccess, TransactionOptions

logger = logging.getLogger(__name__)

TRANSACTION_OPTIONS = TransactionOptions(cross_group=True, attempts=1)


class Persister:
    """
    Persistence entry point for registered modelables.

    Args:
        store: Primary store
        cache_layer: Optional write-through cache, consulted first on read
        registry: Structure registry used when registering instances
    """

    def __init__(self, store: Datastore, cache_layer: Optional[CacheLayer] = None,
                 registry: Optional[StructureRegistry] = None):
        self.store = store
        self.cache_layer = cache_layer
        self.registry = registry or default_registry

    def register(self, instance: Any) -> None:
        """Register instance with this persister's structure registry."""
        register(instance, self.registry)

    # Public operations

    def create(self, instance: Any) -> None:
        """
        Write instance and its references to the store as new entities.

        Unregistered references are skipped. On success the store key is
        set on the instance's record and the instance is cached.
        """
        self._require_registered(instance, "create")
        self._check_creatable(instance.get_record())
        self._run(instance, self._create)
        self._cache_put(instance)

    def update(self, instance: Any) -> None:
        """
        Overwrite the entity of instance and every keyed reference.

        References without a key are created. Unregistered references are
        skipped and keep whatever was stored for them before.
        """
        self._require_registered(instance, "update")
        self._check_keyed(instance.get_record(), "update")
        self._run(instance, self._update)
        self._cache_put(instance)

    def read(self, instance: Any) -> None:
        """
        Load instance and its registered references from the cache or the store.

        A cache hit is authoritative and the store is not consulted.
        """
        self._require_registered(instance, "read")
        self._check_keyed(instance.get_record(), "read")
        saved = self._graph_keys(instance)

        def body(tx: EntityAccess) -> None:
            self._restore_keys(saved)
            self._read(tx, instance)

        try:
            if self.cache_layer is not None and self.cache_layer.get(instance):
                return
            self.store.run_in_transaction(body, TRANSACTION_OPTIONS)
        except Exception:
            self._restore_keys(saved)
            raise

    def modelable_from_id(self, instance: Any, entity_id: int) -> None:
        """Load the entity of instance's kind with the given numeric id into instance."""
        if not instance.get_record().registered:
            register(instance, self.registry)
        record = instance.get_record()
        record.key = Key(kind=record.name, id=entity_id)
        self.read(instance)

    # Transaction bodies

    def _run(self, instance: Any, operation) -> None:
        assigned: List[Record] = []

        def body(tx: EntityAccess) -> None:
            self._forget_keys(assigned)
            operation(tx, instance, assigned)

        try:
            self.store.run_in_transaction(body, TRANSACTION_OPTIONS)
        except Exception:
            self._forget_keys(assigned)
            raise

    @staticmethod
    def _forget_keys(assigned: List[Record]) -> None:
        # keys handed out by a transaction that did not commit
        for record in assigned:
            record.key = None
        assigned.clear()

    @staticmethod
    def _graph_keys(instance: Any) -> List[Tuple[Record, Optional[Key]]]:
        """Keys of instance and every registered reference below it."""
        saved: List[Tuple[Record, Optional[Key]]] = []
        seen = set()
        pending = [instance]
        while pending:
            current = pending.pop()
            record = current.get_record()
            if id(record) in seen or not record.registered:
                continue
            seen.add(id(record))
            saved.append((record, record.key))
            pending.extend(child for _, child in references(current))
        return saved

    @staticmethod
    def _restore_keys(saved: List[Tuple[Record, Optional[Key]]]) -> None:
        # keys adopted by a read that did not complete
        for record, key in saved:
            record.key = key

    def _create(self, tx: EntityAccess, instance: Any, assigned: List[Record]) -> None:
        record = instance.get_record()
        self._check_creatable(record)

        self._persist_references(tx, instance, assigned)

        key = tx.put(Key.incomplete(record.name), to_entity(instance))
        record.key = key
        assigned.append(record)
        logger.debug(f"Created entity {key}")

    def _update(self, tx: EntityAccess, instance: Any, assigned: List[Record]) -> None:
        record = instance.get_record()
        self._check_keyed(record, "update")

        self._persist_references(tx, instance, assigned)

        record.key = tx.put(record.key, to_entity(instance))
        logger.debug(f"Updated entity {record.key}")

    def _persist_references(self, tx: EntityAccess, instance: Any, assigned: List[Record]) -> None:
        parent = instance.get_record().name
        for index, child in references(instance):
            child_record = child.get_record()
            if not child_record.registered:
                logger.debug(f"Skipping unregistered reference {index} of {parent}")
                continue

            creating = child_record.key is None
            try:
                if creating:
                    self._create(tx, child, assigned)
                else:
                    self._update(tx, child, assigned)
            except Exception as e:
                action = "creating" if creating else "updating"
                logger.error(f"Transaction failed when {action} reference {child_record.name} of {parent}: {e}")
                raise

    def _read(self, tx: EntityAccess, instance: Any) -> None:
        record = instance.get_record()
        self._check_keyed(record, "read")

        load_entity(instance, tx.get(record.key))

        for index, child in references(instance):
            if not child.get_record().registered:
                continue
            logger.debug(f"Populating reference {index} of {record.name}")
            self._read(tx, child)

    # Helpers

    @staticmethod
    def _require_registered(instance: Any, operation: str) -> None:
        if not instance.get_record().registered:
            raise InvalidStateError(f"Called {operation} on unregistered modelable {type(instance).__name__}")

    @staticmethod
    def _check_creatable(record: Record) -> None:
        if record.key is not None:
            raise AlreadyCreatedError(f"Modelable {record.name} has already been created as {record.key}")

    @staticmethod
    def _check_keyed(record: Record, operation: str) -> None:
        if record.key is None:
            raise MissingKeyError(f"Can't {operation} modelable {record.name}. Missing key")

    def _cache_put(self, instance: Any) -> None:
        if self.cache_layer is not None:
            self.cache_layer.put(instance)
