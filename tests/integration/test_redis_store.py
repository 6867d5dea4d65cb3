"""
Integration tests for RedisDocumentStore against a real Redis
(testcontainers). Skipped when Docker is not available.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from redis.asyncio.client import Redis as AsyncRedis
from testcontainers.redis import RedisContainer

from src.core.exceptions import StorageUnavailableError
from src.core.logging.logger import get_logger
from src.core.services.container import ServiceContainer
from src.core.store import RedisDocumentStore
from src.modules.shared.exceptions import NotFoundError
from tests.conftest import catalog_document, seed_catalog, seed_user

logger = get_logger(__name__)

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def redis_container() -> Generator[RedisContainer, None, None]:
    """Start a Redis testcontainer shared by this module."""
    container = RedisContainer(image="redis:7-alpine")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker not available for Redis testcontainer: {exc}")

    logger.info(
        "Redis testcontainer started: %s:%s",
        container.get_container_host_ip(),
        container.get_exposed_port(6379),
    )
    yield container
    container.stop()


@pytest_asyncio.fixture
async def redis_store(redis_container) -> AsyncGenerator[RedisDocumentStore, None]:
    """Fresh key prefix per test so tests never see each other's data."""
    url = (
        f"redis://{redis_container.get_container_host_ip()}:"
        f"{redis_container.get_exposed_port(6379)}/0"
    )
    store = await RedisDocumentStore.connect(url=url, key_prefix=f"test-{uuid.uuid4().hex[:8]}")
    yield store
    await store.close()


async def wait_for(predicate, timeout: float = 3.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
class TestRedisDocuments:
    async def test_set_get_merge(self, redis_store):
        await redis_store.set_document("c", "d", {"a": 1, "nested": {"x": 1}})
        await redis_store.set_document("c", "d", {"nested": {"y": 2}}, merge=True)

        assert await redis_store.get_document("c", "d") == {"a": 1, "nested": {"x": 1, "y": 2}}
        assert await redis_store.get_document("c", "missing") is None

    async def test_update_missing_raises(self, redis_store):
        with pytest.raises(NotFoundError):
            await redis_store.update_document("c", "missing", {"a": 1})

    async def test_dotted_update(self, redis_store):
        await redis_store.set_document("players", "p1", {"votes": {}})

        await redis_store.update_document(
            "players", "p1", {"votes.PAC": {"score": 1, "voterChoices": {"u": "up"}}}
        )

        document = await redis_store.get_document("players", "p1")
        assert document["votes"]["PAC"]["score"] == 1

    async def test_list_in_insertion_order_and_delete(self, redis_store):
        for doc_id in ("b", "a", "c"):
            await redis_store.set_document("c", doc_id, {"v": doc_id})
        await redis_store.set_document("c", "b", {"v": "b2"})

        assert [doc["id"] for doc in await redis_store.list_documents("c")] == ["b", "a", "c"]
        assert await redis_store.delete_document("c", "a") is True
        assert await redis_store.delete_document("c", "a") is False
        assert [doc["id"] for doc in await redis_store.list_documents("c")] == ["b", "c"]

    async def test_concurrent_increments(self, redis_store):
        await asyncio.gather(
            *(redis_store.atomic_increment("users", "u1", "currency", 1) for _ in range(25))
        )
        await redis_store.atomic_increment("users", "u1", "currency", -0.5)

        assert (await redis_store.get_document("users", "u1"))["currency"] == 24.5


@pytest.mark.asyncio
class TestRedisSubscriptions:
    async def test_document_subscription_and_unsubscribe(self, redis_store):
        seen = []
        subscription = await redis_store.subscribe("c", seen.append, doc_id="d")

        await redis_store.set_document("c", "d", {"v": 1})
        await wait_for(lambda: len(seen) == 2)

        subscription.unsubscribe()
        await redis_store.set_document("c", "d", {"v": 2})
        await asyncio.sleep(0.2)

        assert seen == [None, {"v": 1}]

    async def test_collection_subscription_ignores_other_collections(self, redis_store):
        sizes = []
        await redis_store.subscribe("c", lambda docs: sizes.append(len(docs)))

        await redis_store.set_document("other", "x", {})
        await redis_store.set_document("c", "a", {})
        await wait_for(lambda: sizes[-1:] == [1])

        assert sizes == [0, 1]


@pytest.mark.asyncio
class TestRedisEndToEnd:
    async def test_three_packs(self, redis_store):
        services = ServiceContainer(store=redis_store)
        await services.initialize()
        try:
            await seed_catalog(
                redis_store, catalog_document("star", 95), catalog_document("squad", 70)
            )
            await seed_user(services, "u1", currency=3)

            for _ in range(3):
                assert await services.packs.open_pack("u1") is not None

            assert await services.ledger.get_balance("u1") == 0
            assert len(await services.inventory.list_instances("u1")) == 3
        finally:
            await services.shutdown()


@pytest.mark.asyncio
async def test_unreachable_redis_maps_to_storage_unavailable():
    client = AsyncRedis.from_url("redis://127.0.0.1:1/0", socket_connect_timeout=0.5)
    store = RedisDocumentStore(client, key_prefix="unreachable", operation_timeout=2)

    with pytest.raises(StorageUnavailableError) as exc_info:
        await store.get_document("c", "d")

    assert exc_info.value.is_retryable
    await client.aclose()
