"""
Document store abstraction.

Everything the backend persists lives in named collections of JSON documents
addressed by a string key. Multi-record mutations go through
``run_transaction``: the callback reads through the transaction (recording the
version of every document it saw) and buffers its writes; the store commits
the writes all-or-nothing and rejects the commit with
``TransactionConflictError`` if any document read has changed in between.

Two implementations exist:
- SupabaseDocumentStore (shared/supabase_store.py) for deployments
- InMemoryDocumentStore (below) for local development and tests

Reads inside a transaction see committed state only, so do all reads
before buffering writes.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, runtime_checkable

from .exceptions import BackingStoreError, TransactionConflictError
from .models import format_timestamp
from .retry import with_retry

T = TypeVar("T")

OPERATORS = ("==", "!=", "<", "<=", ">", ">=")


def normalize_value(value: Any) -> Any:
    """Convert a filter value to the representation documents are stored in."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class Filter:
    """A single field comparison used by ``query``."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, data: dict[str, Any]) -> bool:
        if self.field not in data:
            return False
        left = data[self.field]
        right = normalize_value(self.value)
        if self.op == "==":
            return left == right
        if self.op == "!=":
            return left != right
        if left is None or right is None:
            return False
        if self.op == "<":
            return left < right
        if self.op == "<=":
            return left <= right
        if self.op == ">":
            return left > right
        return left >= right


def where(field_name: str, op: str, value: Any) -> Filter:
    """Shorthand for building a Filter: ``where("user_id", "==", uid)``."""
    return Filter(field_name, op, value)


@dataclass(frozen=True)
class StoredDocument:
    """A document as returned by ``query``."""

    collection: str
    key: str
    data: dict[str, Any]
    version: int


@dataclass
class Write:
    """A buffered transaction write."""

    op: str  # "set" | "update" | "delete"
    collection: str
    key: str
    data: Optional[dict[str, Any]] = None


@dataclass
class Transaction:
    """
    Unit of work handed to ``run_transaction`` callbacks.

    ``get`` reads through the owning store and records the version seen;
    ``set``/``update``/``delete`` only buffer. Nothing is visible to other
    readers until the store commits.
    """

    store: "BaseDocumentStore"
    reads: dict[tuple[str, str], int] = field(default_factory=dict)
    writes: list[Write] = field(default_factory=list)

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        data, version = await self.store._read(collection, key)
        self.reads.setdefault((collection, key), version)
        return data

    def set(self, collection: str, key: str, data: dict[str, Any]) -> None:
        self.writes.append(Write("set", collection, key, copy.deepcopy(data)))

    def update(self, collection: str, key: str, partial: dict[str, Any]) -> None:
        self.writes.append(Write("update", collection, key, copy.deepcopy(partial)))

    def delete(self, collection: str, key: str) -> None:
        self.writes.append(Write("delete", collection, key))


@runtime_checkable
class IDocumentStore(Protocol):
    """Interface for the document store the backend persists into."""

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        """Return the document at ``collection/key`` or None."""
        ...

    async def set(self, collection: str, key: str, data: dict[str, Any]) -> None:
        """Create or replace the document at ``collection/key``."""
        ...

    async def update(self, collection: str, key: str, partial: dict[str, Any]) -> None:
        """Merge ``partial`` into an existing document."""
        ...

    async def delete(self, collection: str, key: str) -> None:
        """Delete the document at ``collection/key`` (no-op if absent)."""
        ...

    async def query(self, collection: str, *filters: Filter) -> list[StoredDocument]:
        """Return every document in ``collection`` matching all filters."""
        ...

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[T]],
        attempts: Optional[int] = None,
    ) -> T:
        """Run ``fn`` and commit its writes atomically, retrying on conflict."""
        ...


class BaseDocumentStore:
    """
    Shared plumbing for document store implementations.

    Subclasses provide ``_read`` (data plus version, version 0 when absent),
    ``_commit`` (apply reads check and writes atomically) and ``query``.
    Single-document writes are one-write commits so versions stay consistent.
    """

    def __init__(self, retry_initial_delay: Optional[float] = None) -> None:
        self._retry_initial_delay = retry_initial_delay

    async def _read(self, collection: str, key: str) -> tuple[Optional[dict[str, Any]], int]:
        raise NotImplementedError

    async def _commit(self, transaction: Transaction) -> None:
        raise NotImplementedError

    async def get(self, collection: str, key: str) -> Optional[dict[str, Any]]:
        data, _ = await self._read(collection, key)
        return data

    async def set(self, collection: str, key: str, data: dict[str, Any]) -> None:
        tx = Transaction(self)
        tx.set(collection, key, data)
        await self._commit(tx)

    async def update(self, collection: str, key: str, partial: dict[str, Any]) -> None:
        tx = Transaction(self)
        tx.update(collection, key, partial)
        await self._commit(tx)

    async def delete(self, collection: str, key: str) -> None:
        tx = Transaction(self)
        tx.delete(collection, key)
        await self._commit(tx)

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[T]],
        attempts: Optional[int] = None,
    ) -> T:
        async def attempt() -> T:
            tx = Transaction(self)
            result = await fn(tx)
            await self._commit(tx)
            return result

        return await with_retry(
            attempt,
            attempts=attempts,
            initial_delay=self._retry_initial_delay,
            retry_on=(TransactionConflictError,),
        )


class InMemoryDocumentStore(BaseDocumentStore):
    """
    Process-local document store.

    Commits run without awaiting, so on a single event loop each commit is
    atomic with respect to every other coroutine.
    """

    def __init__(self, retry_initial_delay: Optional[float] = 0.0) -> None:
        super().__init__(retry_initial_delay)
        self._collections: dict[str, dict[str, tuple[int, dict[str, Any]]]] = {}

    async def _read(self, collection: str, key: str) -> tuple[Optional[dict[str, Any]], int]:
        entry = self._collections.get(collection, {}).get(key)
        if entry is None:
            return None, 0
        version, data = entry
        return copy.deepcopy(data), version

    async def _commit(self, transaction: Transaction) -> None:
        for (collection, key), seen in transaction.reads.items():
            entry = self._collections.get(collection, {}).get(key)
            current = entry[0] if entry else 0
            if current != seen:
                raise TransactionConflictError(collection, key)

        # Validate updates before touching anything.
        pending: dict[tuple[str, str], Optional[dict[str, Any]]] = {}
        for write in transaction.writes:
            slot = (write.collection, write.key)
            if slot in pending:
                existing = pending[slot]
            else:
                entry = self._collections.get(write.collection, {}).get(write.key)
                existing = copy.deepcopy(entry[1]) if entry else None
            if write.op == "set":
                pending[slot] = copy.deepcopy(write.data)
            elif write.op == "update":
                if existing is None:
                    raise BackingStoreError(
                        f"Cannot update missing document {write.collection}/{write.key}",
                        code="document_missing",
                        details={"collection": write.collection, "key": write.key},
                    )
                existing.update(copy.deepcopy(write.data))
                pending[slot] = existing
            else:
                pending[slot] = None

        for (collection, key), data in pending.items():
            docs = self._collections.setdefault(collection, {})
            entry = docs.get(key)
            if data is None:
                docs.pop(key, None)
            else:
                docs[key] = ((entry[0] if entry else 0) + 1, data)

    async def query(self, collection: str, *filters: Filter) -> list[StoredDocument]:
        results = []
        for key, (version, data) in self._collections.get(collection, {}).items():
            if all(f.matches(data) for f in filters):
                results.append(
                    StoredDocument(collection, key, copy.deepcopy(data), version)
                )
        return results

    def clear(self) -> None:
        """Drop every collection (for testing)."""
        self._collections.clear()
