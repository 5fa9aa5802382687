"""Modelable types and store doubles shared by the tests."""

from datetime import date
from typing import List, Optional

from pydantic import Field

from docmodel import Modelable, ModelField, StoreError
from docmodel.persistence.base import EntityAccess
from docmodel.persistence.memory import MemoryDatastore


class Address(Modelable):
    street: str = ""
    city: str = ""


class Person(Modelable):
    name: str = ""
    age: int = 0
    home: Address = Field(default_factory=Address)
    token: str = ModelField("", tag="skip")
    bio: str = ModelField("", tag="noindex")
    nickname: str = ModelField("", tag="search,extra")


class Company(Modelable):
    __kind__ = "Organisation"

    name: str = ""
    founded: Optional[date] = None
    tags: List[str] = Field(default_factory=list)
    office: Optional[Address] = None


class Counter(Modelable):
    count: int = 0


class SpareAddress(Modelable):
    label: str = ""
    spare: Address = ModelField(default_factory=Address, tag="-")


class LockedHome(Modelable):
    home: Address = Field(default_factory=Address, frozen=True)


class FrozenCounter(Modelable, frozen=True):
    count: int = 0


class RecordingAccess(EntityAccess):
    """Delegates to a transactional handle and records every call."""

    def __init__(self, inner: EntityAccess, calls: list, fail_kind: Optional[str] = None):
        self._inner = inner
        self._calls = calls
        self._fail_kind = fail_kind

    def put(self, key, entity):
        self._calls.append(("put", key.kind, key.id))
        if key.kind == self._fail_kind:
            raise StoreError(f"put refused for {key.kind}")
        return self._inner.put(key, entity)

    def get(self, key):
        self._calls.append(("get", key.kind, key.id))
        return self._inner.get(key)


class RecordingDatastore(MemoryDatastore):
    """MemoryDatastore that records transactional calls and their options."""

    def __init__(self, fail_kind: Optional[str] = None):
        super().__init__()
        self.calls = []
        self.transactions = []
        self.fail_kind = fail_kind

    def run_in_transaction(self, fn, options=None):
        self.transactions.append(options)
        return super().run_in_transaction(
            lambda tx: fn(RecordingAccess(tx, self.calls, self.fail_kind)), options
        )
