"""Tests for shared/repository.py."""

from typing import Optional

import pytest
from pydantic import BaseModel

from shared.repository import BaseRepository
from shared.store import InMemoryDocumentStore


class Note(BaseModel):
    id: str
    text: str


class NoteRepository(BaseRepository[Note]):
    collection = "notes"
    model = Note

    async def get(self, note_id: str) -> Optional[Note]:
        return await self._get(note_id)


class TestBaseRepository:
    def test_init_stores_store(self):
        store = InMemoryDocumentStore()
        repo = NoteRepository(store)
        assert repo.store is store

    def test_document_mapping(self):
        repo = NoteRepository(InMemoryDocumentStore())
        note = Note(id="n1", text="hello")
        assert repo.to_document(note) == {"id": "n1", "text": "hello"}
        assert repo.from_document({"id": "n1", "text": "hello"}) == note
        assert repo.from_document(None) is None

    @pytest.mark.asyncio
    async def test_get_reads_collection(self):
        store = InMemoryDocumentStore()
        await store.set("notes", "n1", {"id": "n1", "text": "hello"})
        repo = NoteRepository(store)

        assert (await repo.get("n1")).text == "hello"
        assert await repo.get("missing") is None

    @pytest.mark.asyncio
    async def test_get_inside_transaction_records_read(self):
        store = InMemoryDocumentStore()
        await store.set("notes", "n1", {"id": "n1", "text": "hello"})
        repo = NoteRepository(store)

        async def read(tx):
            note = await repo._get("n1", tx)
            return note, dict(tx.reads)

        note, reads = await store.run_transaction(read)
        assert note.text == "hello"
        assert reads == {("notes", "n1"): 1}
