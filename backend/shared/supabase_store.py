"""
Document store backed by Supabase (PostgREST).

All collections share one ``documents`` table (see
migrations/001_document_store.sql):

    documents(collection text, key text, data jsonb, version bigint)

Plain reads and queries go through the table API. Every write, including the
single-document ones, is applied by the ``commit_document_writes`` Postgres
function, which checks the versions recorded by the transaction and applies
the buffered writes inside one database transaction. A version mismatch is
raised with SQLSTATE 40001 and surfaces here as ``TransactionConflictError``.
"""

import logging
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from .exceptions import (
    BackingStoreError,
    TransactionConflictError,
    TransientBackingStoreError,
)
from .retry import with_retry
from .store import BaseDocumentStore, Filter, StoredDocument, Transaction, normalize_value

logger = logging.getLogger(__name__)

DOCUMENTS_TABLE = "documents"
COMMIT_FUNCTION = "commit_document_writes"

SERIALIZATION_FAILURE = "40001"

_FILTER_METHODS = {
    "==": "eq",
    "!=": "neq",
    "<": "lt",
    "<=": "lte",
    ">": "gt",
    ">=": "gte",
}


def _as_text(value: Any) -> str:
    """Render a filter value the way ``data->>field`` renders it."""
    value = normalize_value(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class SupabaseDocumentStore(BaseDocumentStore):
    """Document store on a Supabase service-role client."""

    def __init__(self, db: Client, retry_initial_delay: Optional[float] = None) -> None:
        super().__init__(retry_initial_delay)
        self._db = db

    async def _call(self, description: str, fn):
        """Execute a PostgREST call, classifying failures."""

        async def attempt():
            try:
                return fn()
            except httpx.TransportError as e:
                raise TransientBackingStoreError(
                    f"Document store unreachable during {description}",
                    code="store_unavailable",
                    details={"reason": str(e)},
                ) from e

        return await with_retry(attempt, initial_delay=self._retry_initial_delay)

    async def _read(self, collection: str, key: str) -> tuple[Optional[dict[str, Any]], int]:
        try:
            result = await self._call(
                "read",
                lambda: self._db.table(DOCUMENTS_TABLE)
                .select("data, version")
                .eq("collection", collection)
                .eq("key", key)
                .limit(1)
                .execute(),
            )
        except APIError as e:
            raise BackingStoreError(
                f"Failed to read {collection}/{key}: {e.message}",
                code="store_error",
            ) from e

        if not result.data:
            return None, 0
        row = result.data[0]
        return row["data"], int(row["version"])

    async def _commit(self, transaction: Transaction) -> None:
        if not transaction.writes:
            return

        reads = [
            {"collection": collection, "key": key, "version": version}
            for (collection, key), version in transaction.reads.items()
        ]
        writes = [
            {"op": w.op, "collection": w.collection, "key": w.key, "data": w.data}
            for w in transaction.writes
        ]

        try:
            await self._call(
                "commit",
                lambda: self._db.rpc(
                    COMMIT_FUNCTION, {"p_reads": reads, "p_writes": writes}
                ).execute(),
            )
        except APIError as e:
            if e.code == SERIALIZATION_FAILURE:
                collection, key = self._conflict_slot(e, transaction)
                logger.debug("Commit rejected on %s/%s", collection, key)
                raise TransactionConflictError(collection, key) from e
            raise BackingStoreError(
                f"Failed to commit writes: {e.message}",
                code="store_error",
                details={"sqlstate": e.code},
            ) from e

    @staticmethod
    def _conflict_slot(error: APIError, transaction: Transaction) -> tuple[str, str]:
        # The function reports "collection/key" in the error details.
        slot = (error.details or "").strip()
        if "/" in slot:
            collection, key = slot.split("/", 1)
            return collection, key
        if transaction.reads:
            return next(iter(transaction.reads))
        return "unknown", "unknown"

    async def query(self, collection: str, *filters: Filter) -> list[StoredDocument]:
        def run():
            q = (
                self._db.table(DOCUMENTS_TABLE)
                .select("key, data, version")
                .eq("collection", collection)
            )
            for f in filters:
                method = getattr(q, _FILTER_METHODS[f.op])
                q = method(f"data->>{f.field}", _as_text(f.value))
            return q.execute()

        try:
            result = await self._call("query", run)
        except APIError as e:
            raise BackingStoreError(
                f"Failed to query {collection}: {e.message}",
                code="store_error",
            ) from e

        return [
            StoredDocument(collection, row["key"], row["data"], int(row["version"]))
            for row in result.data
        ]
