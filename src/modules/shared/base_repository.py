"""
Base Repository Pattern

Purpose
-------
Typed access to one DocumentStore collection. A repository converts stored
documents into domain models and back, and logs every write.

What this class does NOT do:
- Business rules (services own those)
- Cross-document consistency (each call is one store round trip)

Usage
-----
    repo = BaseRepository(store, "players", CatalogEntry.from_document, logger)
    entry = await repo.get("p_messi")
    entries = await repo.list_all()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Generic, Iterable, List, Mapping, Optional, TypeVar

from src.domain.models.base import DomainValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.store.base import DocumentStore

T = TypeVar("T")

# Errors a factory raises for a malformed or out-of-vocabulary document
UNDECODABLE = (DomainValidationError, KeyError, TypeError, ValueError)


class BaseRepository(Generic[T]):
    """
    Generic repository over a single collection.

    Type Parameters:
        T: The domain model this repository yields
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        factory: Callable[[Mapping[str, Any]], T],
        logger: Logger,
    ) -> None:
        self.store = store
        self.collection = collection
        self._factory = factory
        self.log = logger

    async def get(self, doc_id: str) -> Optional[T]:
        document = await self.store.get_document(self.collection, doc_id)
        if document is None:
            return None
        document.setdefault("id", doc_id)
        return self._factory(document)

    async def exists(self, doc_id: str) -> bool:
        return await self.store.get_document(self.collection, doc_id) is not None

    async def list_all(self) -> List[T]:
        return self.decode_all(await self.store.list_documents(self.collection))

    def decode_all(self, documents: Iterable[Mapping[str, Any]]) -> List[T]:
        """Decode every well-formed document; broken ones are logged and skipped."""
        models: List[T] = []
        for document in documents:
            try:
                models.append(self._factory(document))
            except UNDECODABLE as exc:
                self.log.warning(
                    "Skipping undecodable document",
                    extra={
                        "collection": self.collection,
                        "doc_id": document.get("id"),
                        "error": str(exc),
                    },
                )
        return models

    async def save(self, doc_id: str, document: Dict[str, Any], merge: bool = False) -> None:
        await self.store.set_document(self.collection, doc_id, document, merge=merge)
        self.log.debug(
            "Document saved",
            extra={"collection": self.collection, "doc_id": doc_id, "merge": merge},
        )

    async def delete(self, doc_id: str) -> bool:
        deleted = await self.store.delete_document(self.collection, doc_id)
        self.log.debug(
            "Document delete",
            extra={"collection": self.collection, "doc_id": doc_id, "deleted": deleted},
        )
        return deleted
