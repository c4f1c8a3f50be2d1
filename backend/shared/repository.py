"""
Base repository class for document access.

Provides a common abstraction layer for all repositories, encapsulating
document store access and the dict <-> Pydantic mapping every repository
needs.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from .store import IDocumentStore, Transaction


T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for document operations:
    - Document store access via self._store
    - ``collection`` and ``model`` class attributes naming where and what
    - Mapping helpers that work both directly and inside a transaction

    Example:
        class SessionRepository(BaseRepository[Session]):
            collection = "sessions"
            model = Session

            async def get(self, user_id: str) -> Optional[Session]:
                return await self._get(user_id)
    """

    collection: str = ""
    model: type[T]

    def __init__(self, store: IDocumentStore) -> None:
        """
        Initialize the repository with a document store.

        Args:
            store: Document store instance for persistence.
        """
        self._store = store

    @property
    def store(self) -> IDocumentStore:
        return self._store

    def to_document(self, item: T) -> dict[str, Any]:
        """Serialize a model into its stored JSON form."""
        return item.model_dump(mode="json")

    def from_document(self, data: Optional[dict[str, Any]]) -> Optional[T]:
        """Parse a stored document, passing None through."""
        if data is None:
            return None
        return self.model.model_validate(data)

    async def _get(self, key: str, tx: Optional[Transaction] = None) -> Optional[T]:
        if tx is not None:
            return self.from_document(await tx.get(self.collection, key))
        return self.from_document(await self._store.get(self.collection, key))
