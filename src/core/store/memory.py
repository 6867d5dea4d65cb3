"""
In-process document store.

Default backend for development and the backend every unit test runs on.
All mutations take one asyncio lock, so each read-modify-write (merge,
dotted update, increment) is atomic with respect to other coroutines.
Subscribers are notified after the lock is released, in write order.
"""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List, Mapping, Optional, Union

from src.core.logging.logger import get_logger
from src.core.store.base import (
    Document,
    Increment,
    Snapshot,
    SnapshotCallback,
    Subscription,
    apply_updates,
    merge_document,
    replace_document,
    with_id,
)
from src.modules.shared.exceptions import NotFoundError

logger = get_logger(__name__)


class InMemoryDocumentStore:
    """Dictionary-backed `DocumentStore`."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = asyncio.Lock()
        self._subscriptions: List[Subscription] = []

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get_document(self, collection: str, doc_id: str) -> Optional[Document]:
        document = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def list_documents(self, collection: str) -> List[Document]:
        return [
            with_id(doc_id, document)
            for doc_id, document in self._collections.get(collection, {}).items()
        ]

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        merge: bool = False,
    ) -> None:
        async with self._lock:
            docs = self._collections.setdefault(collection, {})
            if merge:
                docs[doc_id] = merge_document(docs.get(doc_id), data)
            else:
                docs[doc_id] = replace_document(data)
        await self._notify(collection, doc_id)

    async def update_document(
        self, collection: str, doc_id: str, updates: Mapping[str, Any]
    ) -> None:
        async with self._lock:
            docs = self._collections.get(collection, {})
            existing = docs.get(doc_id)
            if existing is None:
                raise NotFoundError(collection, doc_id)
            docs[doc_id] = apply_updates(existing, updates)
        await self._notify(collection, doc_id)

    async def delete_document(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            docs = self._collections.get(collection, {})
            deleted = docs.pop(doc_id, None) is not None
        if deleted:
            await self._notify(collection, doc_id)
        return deleted

    async def atomic_increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        delta: Union[int, float],
    ) -> Union[int, float]:
        async with self._lock:
            docs = self._collections.setdefault(collection, {})
            current = docs.get(doc_id) or {}
            current = apply_updates(current, {field: Increment(delta)})
            docs[doc_id] = current
            new_value = _read_path(current, field)
        await self._notify(collection, doc_id)
        return new_value

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        doc_id: Optional[str] = None,
    ) -> Subscription:
        subscription = Subscription(
            collection, callback, doc_id=doc_id, on_cancel=self._remove_subscription
        )
        self._subscriptions.append(subscription)
        logger.debug(
            "Store subscription opened",
            extra={"collection": collection, "doc_id": doc_id},
        )
        await subscription.deliver(await self._snapshot(collection, doc_id))
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
            logger.debug(
                "Store subscription closed",
                extra={"collection": subscription.collection, "doc_id": subscription.doc_id},
            )

    async def _snapshot(self, collection: str, doc_id: Optional[str]) -> Snapshot:
        if doc_id is None:
            return await self.list_documents(collection)
        return await self.get_document(collection, doc_id)

    async def _notify(self, collection: str, doc_id: str) -> None:
        for subscription in list(self._subscriptions):
            if subscription.active and subscription.matches(collection, doc_id):
                await subscription.deliver(
                    await self._snapshot(collection, subscription.doc_id)
                )

    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()
        self._subscriptions.clear()


def _read_path(document: Document, path: str) -> Any:
    node: Any = document
    for part in path.split("."):
        node = node[part]
    return node
