"""
docmodel Persistence Layer - SQL Backend

Primary store backed by a single SQLModel table. Each entity is one row
holding its kind, a JSON property list and a version counter used for
optimistic concurrency checks.
"""

import json
import logging
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ..core.errors import EntityNotFoundError, StoreError, TransactionConflictError
from ..core.keys import Key
from .base import Datastore, Entity, EntityAccess, T, TransactionOptions

logger = logging.getLogger(__name__)


class EntityRow(SQLModel, table=True):
    """Stored entity"""
    __tablename__ = "docmodel_entity"

    id: Optional[int] = Field(default=None, primary_key=True)
    kind: str = Field(index=True)
    payload: str = "[]"
    version: int = 1


# SQLSTATE serialization_failure and deadlock_detected
CONTENTION_SQLSTATES = ("40001", "40P01")
CONTENTION_MESSAGES = ("database is locked", "deadlock", "could not serialize", "lock wait timeout")


def _is_contention(error: OperationalError) -> bool:
    """True if error reports a lock or serialization failure rather than a broken database."""
    orig = error.orig
    if getattr(orig, "pgcode", None) in CONTENTION_SQLSTATES or getattr(orig, "sqlstate", None) in CONTENTION_SQLSTATES:
        return True
    message = str(orig).lower()
    return any(text in message for text in CONTENTION_MESSAGES)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Map SQLAlchemy exceptions onto the docmodel error hierarchy."""
    try:
        yield
    except IntegrityError as e:
        logger.error(f"SQL contention during {operation}: {e}")
        raise TransactionConflictError(f"Conflict during {operation}") from e
    except OperationalError as e:
        if _is_contention(e):
            logger.error(f"SQL contention during {operation}: {e}")
            raise TransactionConflictError(f"Conflict during {operation}") from e
        logger.error(f"SQL error during {operation}: {e}")
        raise StoreError(f"Database operation failed during {operation}") from e
    except SQLAlchemyError as e:
        logger.error(f"SQL error during {operation}: {e}")
        raise StoreError(f"Database operation failed during {operation}") from e


class SQLTransaction(EntityAccess):
    """EntityAccess bound to one SQLModel session."""

    def __init__(self, session: Session):
        self._session = session
        self._versions: Dict[Key, int] = {}

    def _load_row(self, key: Key) -> Optional[EntityRow]:
        statement = select(EntityRow).where(EntityRow.id == key.id).execution_options(populate_existing=True)
        row = self._session.exec(statement).first()
        if row is None or row.kind != key.kind:
            return None
        return row

    def put(self, key: Key, entity: Entity) -> Key:
        payload = json.dumps(entity.to_list())
        with _store_errors(f"put {key}"):
            if not key.is_complete:
                row = EntityRow(kind=key.kind, payload=payload)
                self._session.add(row)
                self._session.flush()
                key = Key(kind=key.kind, id=row.id)
                self._versions[key] = row.version
                return key

            expected = self._versions.get(key)
            if expected is None:
                row = self._load_row(key)
                if row is None:
                    self._session.add(EntityRow(id=key.id, kind=key.kind, payload=payload))
                    self._session.flush()
                    self._versions[key] = 1
                    return key
                expected = row.version

            result = self._session.execute(
                update(EntityRow)
                .where(EntityRow.id == key.id, EntityRow.version == expected)
                .values(payload=payload, version=expected + 1)
                .execution_options(synchronize_session=False)
            )
        if result.rowcount != 1:
            raise TransactionConflictError(f"Concurrent modification of {key}")
        self._versions[key] = expected + 1
        return key

    def get(self, key: Key) -> Entity:
        with _store_errors(f"get {key}"):
            row = self._load_row(key)
        if row is None:
            raise EntityNotFoundError(f"No entity stored for key {key}")
        self._versions.setdefault(key, row.version)
        return Entity.from_list(json.loads(row.payload))


class SQLDatastore(Datastore):
    """
    SQL primary store.

    Every transaction runs in its own session. The database already provides
    multi-row atomicity, so cross_group is accepted but not enforced.
    """

    def __init__(self, url: str = "sqlite://", echo: bool = False, engine=None):
        if engine is None:
            kwargs = {"echo": echo}
            if url.startswith("sqlite"):
                kwargs["connect_args"] = {"check_same_thread": False}
                if url in ("sqlite://", "sqlite:///:memory:"):
                    kwargs["poolclass"] = StaticPool
            engine = create_engine(url, **kwargs)
        self.engine = engine
        SQLModel.metadata.create_all(self.engine, tables=[EntityRow.__table__])
        logger.info(f"SQLDatastore initialized: {self.engine.url}")

    def put(self, key: Key, entity: Entity) -> Key:
        return self.run_in_transaction(lambda tx: tx.put(key, entity))

    def get(self, key: Key) -> Entity:
        with Session(self.engine) as session:
            return SQLTransaction(session).get(key)

    def run_in_transaction(self, fn: Callable[[EntityAccess], T],
                           options: Optional[TransactionOptions] = None) -> T:
        options = options or TransactionOptions()
        attempts = max(1, options.attempts)
        conflict: Optional[TransactionConflictError] = None

        for attempt in range(1, attempts + 1):
            with Session(self.engine) as session:
                try:
                    result = fn(SQLTransaction(session))
                    with _store_errors("commit"):
                        session.commit()
                    return result
                except TransactionConflictError as e:
                    session.rollback()
                    conflict = e
                    logger.info(f"Transaction attempt {attempt}/{attempts} conflicted: {e}")
                except Exception:
                    session.rollback()
                    raise

        raise conflict

    def close(self) -> None:
        self.engine.dispose()
        logger.info("SQLDatastore closed")
