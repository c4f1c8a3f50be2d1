"""Tests for shared/store.py (in-memory document store and transactions)."""

from datetime import datetime, timezone

import pytest

from shared.exceptions import BackingStoreError, TransactionConflictError
from shared.store import Filter, InMemoryDocumentStore, Transaction, where


class TestFilter:
    def test_rejects_unknown_operator(self):
        with pytest.raises(ValueError):
            Filter("a", "in", [1])

    def test_missing_field_never_matches(self):
        assert not where("a", "!=", 1).matches({})

    def test_datetimes_compare_in_stored_format(self):
        f = where("expires_at", "<", datetime(2026, 3, 2, tzinfo=timezone.utc))
        assert f.matches({"expires_at": "2026-03-01T23:59:59.000000Z"})
        assert not f.matches({"expires_at": "2026-03-02T00:00:00.000000Z"})

    def test_none_is_not_ordered(self):
        assert not where("a", "<", 5).matches({"a": None})


class TestInMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_set_get_update_delete(self):
        store = InMemoryDocumentStore()
        await store.set("users", "u1", {"name": "Asha", "role": "user"})
        await store.update("users", "u1", {"role": "admin"})
        assert await store.get("users", "u1") == {"name": "Asha", "role": "admin"}

        await store.delete("users", "u1")
        assert await store.get("users", "u1") is None

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self):
        store = InMemoryDocumentStore()
        await store.delete("users", "ghost")

    @pytest.mark.asyncio
    async def test_update_missing_fails(self):
        store = InMemoryDocumentStore()
        with pytest.raises(BackingStoreError) as exc_info:
            await store.update("users", "ghost", {"role": "admin"})
        assert exc_info.value.code == "document_missing"

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self):
        store = InMemoryDocumentStore()
        await store.set("users", "u1", {"tags": ["a"]})
        doc = await store.get("users", "u1")
        doc["tags"].append("b")
        assert await store.get("users", "u1") == {"tags": ["a"]}

    @pytest.mark.asyncio
    async def test_query_applies_all_filters(self):
        store = InMemoryDocumentStore()
        await store.set("refresh_tokens", "h1", {"user_id": "u1", "is_revoked": False})
        await store.set("refresh_tokens", "h2", {"user_id": "u1", "is_revoked": True})
        await store.set("refresh_tokens", "h3", {"user_id": "u2", "is_revoked": False})

        docs = await store.query(
            "refresh_tokens", where("user_id", "==", "u1"), where("is_revoked", "==", False)
        )
        assert [d.key for d in docs] == ["h1"]


class TestTransactions:
    @pytest.mark.asyncio
    async def test_commits_all_writes(self):
        store = InMemoryDocumentStore()
        await store.set("users", "u1", {"role": "user"})

        async def promote(tx: Transaction) -> str:
            await tx.get("users", "u1")
            tx.update("users", "u1", {"role": "admin"})
            tx.set("admins", "u1", {"user_id": "u1"})
            return "done"

        assert await store.run_transaction(promote) == "done"
        assert (await store.get("users", "u1"))["role"] == "admin"
        assert await store.get("admins", "u1") == {"user_id": "u1"}

    @pytest.mark.asyncio
    async def test_failing_write_leaves_nothing_behind(self):
        store = InMemoryDocumentStore()

        async def partial(tx: Transaction) -> None:
            tx.set("admins", "u1", {"user_id": "u1"})
            tx.update("users", "missing", {"role": "admin"})

        with pytest.raises(BackingStoreError):
            await store.run_transaction(partial)
        assert await store.get("admins", "u1") is None

    @pytest.mark.asyncio
    async def test_exception_in_callback_discards_writes(self):
        store = InMemoryDocumentStore()

        async def boom(tx: Transaction) -> None:
            tx.set("admins", "u1", {"user_id": "u1"})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.run_transaction(boom)
        assert await store.get("admins", "u1") is None

    @pytest.mark.asyncio
    async def test_conflicting_commit_is_retried(self):
        store = InMemoryDocumentStore()
        await store.set("counters", "c", {"n": 0})
        calls = []

        async def increment(tx: Transaction) -> int:
            doc = await tx.get("counters", "c")
            calls.append(doc["n"])
            if len(calls) == 1:
                # Someone else commits between our read and our commit.
                await store.set("counters", "c", {"n": 10})
            tx.set("counters", "c", {"n": doc["n"] + 1})
            return doc["n"] + 1

        assert await store.run_transaction(increment) == 11
        assert calls == [0, 10]
        assert await store.get("counters", "c") == {"n": 11}

    @pytest.mark.asyncio
    async def test_conflict_surfaces_when_attempts_run_out(self):
        store = InMemoryDocumentStore()
        await store.set("counters", "c", {"n": 0})

        async def always_raced(tx: Transaction) -> None:
            doc = await tx.get("counters", "c")
            await store.set("counters", "c", {"n": doc["n"] + 100})
            tx.set("counters", "c", {"n": -1})

        with pytest.raises(TransactionConflictError):
            await store.run_transaction(always_raced, attempts=2)

    @pytest.mark.asyncio
    async def test_creation_conflicts_with_concurrent_creation(self):
        store = InMemoryDocumentStore()

        async def create_once(tx: Transaction) -> None:
            if await tx.get("sessions", "u1") is None:
                await store.set("sessions", "u1", {"by": "other"})
                tx.set("sessions", "u1", {"by": "me"})

        with pytest.raises(TransactionConflictError):
            await store.run_transaction(create_once, attempts=1)

    @pytest.mark.asyncio
    async def test_clear(self):
        store = InMemoryDocumentStore()
        await store.set("users", "u1", {})
        store.clear()
        assert await store.get("users", "u1") is None
