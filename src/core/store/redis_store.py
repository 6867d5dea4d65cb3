"""
Redis-backed document store.

Layout
------
- `{prefix}:doc:{collection}:{doc_id}` : JSON-encoded document
- `{prefix}:idx:{collection}`          : sorted set of doc ids (insertion order)
- `{prefix}:seq`                       : counter feeding index scores
- `{prefix}:chan:{collection}`         : pub/sub channel, message = doc id

Read-modify-write operations (merge, dotted update, increment) run as
WATCH/MULTI optimistic transactions and retry on `WatchError`. Every call is
bounded by `Config.STORE_OPERATION_TIMEOUT`; Redis errors and timeouts
surface as `StorageUnavailableError`.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError, WatchError

from src.core.config.config import Config
from src.core.exceptions import StorageUnavailableError
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

T = TypeVar("T")


class RedisDocumentStore:
    """`DocumentStore` on top of `redis.asyncio`."""

    def __init__(
        self,
        client: AsyncRedis,
        key_prefix: Optional[str] = None,
        operation_timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self._prefix = key_prefix or Config.REDIS_KEY_PREFIX
        self._timeout = (
            Config.STORE_OPERATION_TIMEOUT if operation_timeout is None else operation_timeout
        )
        self._listeners: Dict[Subscription, asyncio.Task[None]] = {}

    @classmethod
    async def connect(
        cls,
        url: Optional[str] = None,
        key_prefix: Optional[str] = None,
    ) -> "RedisDocumentStore":
        """Create a pooled client from `Config` and verify it with PING."""
        url = url or Config.REDIS_URL
        client: AsyncRedis = AsyncRedis.from_url(
            url,
            socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
            decode_responses=True,
            max_connections=Config.REDIS_MAX_CONNECTIONS,
            health_check_interval=30,
        )
        store = cls(client, key_prefix=key_prefix)
        await store._guard("connect", client.ping())

        logger.info(
            "RedisDocumentStore connected",
            extra={
                "url_scheme": url.split("://")[0] if "://" in url else "unknown",
                "key_prefix": store._prefix,
                "operation_timeout_seconds": store._timeout,
            },
        )
        return store

    # ------------------------------------------------------------------ #
    # Keys
    # ------------------------------------------------------------------ #

    def _doc_key(self, collection: str, doc_id: str) -> str:
        return f"{self._prefix}:doc:{collection}:{doc_id}"

    def _index_key(self, collection: str) -> str:
        return f"{self._prefix}:idx:{collection}"

    def _channel(self, collection: str) -> str:
        return f"{self._prefix}:chan:{collection}"

    def _seq_key(self) -> str:
        return f"{self._prefix}:seq"

    # ------------------------------------------------------------------ #
    # Error translation
    # ------------------------------------------------------------------ #

    async def _guard(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            if self._timeout and self._timeout > 0:
                return await asyncio.wait_for(awaitable, timeout=self._timeout)
            return await awaitable
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.error(
                "Document store operation failed",
                extra={
                    "operation": operation,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
            raise StorageUnavailableError(operation, exc) from exc

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get_document(self, collection: str, doc_id: str) -> Optional[Document]:
        raw = await self._guard(
            "get_document", self._client.get(self._doc_key(collection, doc_id))
        )
        return json.loads(raw) if raw is not None else None

    async def _list(self, collection: str) -> List[Document]:
        doc_ids: List[str] = await self._client.zrange(self._index_key(collection), 0, -1)
        if not doc_ids:
            return []
        raws = await self._client.mget([self._doc_key(collection, d) for d in doc_ids])
        return [
            with_id(doc_id, json.loads(raw))
            for doc_id, raw in zip(doc_ids, raws)
            if raw is not None
        ]

    async def list_documents(self, collection: str) -> List[Document]:
        return await self._guard("list_documents", self._list(collection))

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def _transact(
        self,
        collection: str,
        doc_id: str,
        mutate: Callable[[Optional[Document]], Document],
    ) -> Document:
        """WATCH the document, compute its new value, write it under MULTI."""
        key = self._doc_key(collection, doc_id)
        index_key = self._index_key(collection)

        async with self._client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    existing = json.loads(raw) if raw is not None else None
                    updated = mutate(existing)
                    score = await self._client.incr(self._seq_key()) if existing is None else None

                    pipe.multi()
                    pipe.set(key, json.dumps(updated))
                    if score is not None:
                        pipe.zadd(index_key, {doc_id: score}, nx=True)
                    await pipe.execute()
                    break
                except WatchError:
                    logger.debug(
                        "Document changed during transaction, retrying",
                        extra={"collection": collection, "doc_id": doc_id},
                    )
                    continue

        await self._client.publish(self._channel(collection), doc_id)
        return updated

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        data: Mapping[str, Any],
        merge: bool = False,
    ) -> None:
        if merge:
            mutate = lambda existing: merge_document(existing, data)  # noqa: E731
        else:
            mutate = lambda existing: replace_document(data)  # noqa: E731
        await self._guard("set_document", self._transact(collection, doc_id, mutate))

    async def update_document(
        self, collection: str, doc_id: str, updates: Mapping[str, Any]
    ) -> None:
        def mutate(existing: Optional[Document]) -> Document:
            if existing is None:
                raise NotFoundError(collection, doc_id)
            return apply_updates(existing, updates)

        await self._guard("update_document", self._transact(collection, doc_id, mutate))

    async def _delete(self, collection: str, doc_id: str) -> bool:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.delete(self._doc_key(collection, doc_id))
            pipe.zrem(self._index_key(collection), doc_id)
            deleted, _ = await pipe.execute()
        if deleted:
            await self._client.publish(self._channel(collection), doc_id)
        return bool(deleted)

    async def delete_document(self, collection: str, doc_id: str) -> bool:
        return await self._guard("delete_document", self._delete(collection, doc_id))

    async def atomic_increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        delta: Union[int, float],
    ) -> Union[int, float]:
        updated = await self._guard(
            "atomic_increment",
            self._transact(
                collection,
                doc_id,
                lambda existing: apply_updates(existing or {}, {field: Increment(delta)}),
            ),
        )
        node: Any = updated
        for part in field.split("."):
            node = node[part]
        return node

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    async def _snapshot(self, collection: str, doc_id: Optional[str]) -> Snapshot:
        if doc_id is None:
            return await self.list_documents(collection)
        return await self.get_document(collection, doc_id)

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        doc_id: Optional[str] = None,
    ) -> Subscription:
        pubsub = self._client.pubsub()
        subscription = Subscription(
            collection, callback, doc_id=doc_id, on_cancel=self._cancel_listener
        )
        try:
            await self._guard("subscribe", pubsub.subscribe(self._channel(collection)))
            await subscription.deliver(await self._snapshot(collection, doc_id))
        except BaseException:
            # No listener task owns the connection yet
            await pubsub.aclose()
            raise

        task = asyncio.get_running_loop().create_task(
            self._listen(pubsub, subscription),
            name=f"store-subscription-{collection}-{doc_id or '*'}",
        )
        self._listeners[subscription] = task
        return subscription

    async def _listen(self, pubsub: Any, subscription: Subscription) -> None:
        try:
            while subscription.active:
                message = await pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=1.0
                )
                if message is None or not subscription.active:
                    continue
                changed_id = message.get("data")
                if subscription.doc_id is not None and changed_id != subscription.doc_id:
                    continue
                try:
                    snapshot = await self._snapshot(subscription.collection, subscription.doc_id)
                except StorageUnavailableError:
                    continue
                await subscription.deliver(snapshot)
        except (RedisError, OSError) as exc:
            logger.error(
                "Store subscription listener stopped",
                extra={
                    "collection": subscription.collection,
                    "doc_id": subscription.doc_id,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
        finally:
            await pubsub.aclose()

    def _cancel_listener(self, subscription: Subscription) -> None:
        task = self._listeners.pop(subscription, None)
        if task is not None and not task.done():
            task.cancel()

    async def close(self) -> None:
        for subscription in list(self._listeners):
            subscription.unsubscribe()
        await self._client.aclose()
        logger.info("RedisDocumentStore closed")
