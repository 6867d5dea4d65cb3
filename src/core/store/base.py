"""
Document store port.

Purpose
-------
Define the contract every persistence adapter fulfils: keyed JSON-like
documents grouped in collections, partial updates, additive increments and
push-based change subscriptions.

Design Notes
------------
- Collections are plain strings; nested collections use path syntax
  (`"users/u_1/inventory"`).
- `update_document` field paths use dots to address nested maps
  (`"votes.PAC"`).
- `Increment(delta)` may appear as a value in `set_document(merge=True)` or
  `update_document`; adapters resolve it against the stored value in the
  same write.
- Subscriptions deliver an initial snapshot, then a fresh snapshot after
  every write to the watched collection or document. Collection snapshots
  are lists of documents in insertion order; document snapshots are the
  document or `None`.
"""

from __future__ import annotations

import copy
import inspect
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from src.core.logging.logger import get_logger

logger = get_logger(__name__)

Document = Dict[str, Any]
Snapshot = Union[List[Document], Optional[Document]]
SnapshotCallback = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class Increment:
    """Additive field update; a missing or non-numeric field counts as 0."""

    delta: Union[int, float]


class Subscription:
    """
    Handle returned by `DocumentStore.subscribe`.

    After `unsubscribe()` returns, the callback is never invoked again.
    """

    def __init__(
        self,
        collection: str,
        callback: SnapshotCallback,
        doc_id: Optional[str] = None,
        on_cancel: Optional[Callable[["Subscription"], None]] = None,
    ) -> None:
        self.collection = collection
        self.doc_id = doc_id
        self._callback = callback
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, collection: str, doc_id: str) -> bool:
        if collection != self.collection:
            return False
        return self.doc_id is None or self.doc_id == doc_id

    async def deliver(self, snapshot: Snapshot) -> None:
        """Invoke the callback; callback failures are logged, never raised to the writer."""
        if not self._active:
            return
        try:
            result = self._callback(copy.deepcopy(snapshot))
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error(
                "Subscription callback failed",
                extra={
                    "collection": self.collection,
                    "doc_id": self.doc_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel(self)


@runtime_checkable
class DocumentStore(Protocol):
    """Async persistence port used by every domain service."""

    async def get_document(self, collection: str, doc_id: str) -> Optional[Document]:
        ...

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        merge: bool = False,
    ) -> None:
        ...

    async def update_document(
        self, collection: str, doc_id: str, updates: Mapping[str, Any]
    ) -> None:
        """Raises NotFoundError when the document does not exist."""
        ...

    async def delete_document(self, collection: str, doc_id: str) -> bool:
        ...

    async def atomic_increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        delta: Union[int, float],
    ) -> Union[int, float]:
        """Add `delta` to `field`, creating the document if needed; returns the new value."""
        ...

    async def list_documents(self, collection: str) -> List[Document]:
        ...

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        doc_id: Optional[str] = None,
    ) -> Subscription:
        ...

    async def close(self) -> None:
        ...


# ---------------------------------------------------------------------------
# Shared write semantics
# ---------------------------------------------------------------------------


def _resolve(current: Any, value: Any) -> Any:
    if isinstance(value, Increment):
        base = current if isinstance(current, (int, float)) and not isinstance(current, bool) else 0
        return base + value.delta
    if isinstance(value, Mapping):
        existing = current if isinstance(current, dict) else {}
        return {key: _resolve(existing.get(key), item) for key, item in value.items()}
    return copy.deepcopy(value)


def merge_document(existing: Optional[Document], data: Mapping[str, Any]) -> Document:
    """Deep-merge `data` into a copy of `existing` (set with merge=True)."""
    result: Document = copy.deepcopy(existing) if existing else {}
    for key, value in data.items():
        current = result.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            result[key] = merge_document(current, value)
        else:
            result[key] = _resolve(current, value)
    return result


def replace_document(data: Mapping[str, Any]) -> Document:
    """Full overwrite (set with merge=False); increments resolve against nothing."""
    return {key: _resolve(None, value) for key, value in data.items()}


def apply_updates(existing: Document, updates: Mapping[str, Any]) -> Document:
    """Apply dotted-path field updates to a copy of `existing`."""
    result = copy.deepcopy(existing)
    for path, value in updates.items():
        parts = path.split(".")
        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = _resolve(node.get(parts[-1]), value)
    return result


def with_id(doc_id: str, document: Document) -> Document:
    """Listing view of a document: its id is always present under `"id"`."""
    view = copy.deepcopy(document)
    view.setdefault("id", doc_id)
    return view
