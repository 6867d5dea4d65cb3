"""
Unit tests for InMemoryDocumentStore and the shared write semantics.
"""

import asyncio

import pytest

from src.core.store import DocumentStore, Increment, InMemoryDocumentStore
from src.core.store.base import apply_updates, merge_document
from src.modules.shared.exceptions import NotFoundError


@pytest.mark.unit
class TestWriteSemantics:
    def test_merge_is_deep(self):
        merged = merge_document({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}})

        assert merged == {"a": {"x": 1, "y": 3}, "b": 1}

    def test_increment_on_missing_field_starts_from_zero(self):
        assert merge_document(None, {"n": Increment(2)}) == {"n": 2}
        assert merge_document({"n": 5}, {"n": Increment(-1.5)}) == {"n": 3.5}

    def test_dotted_update_creates_intermediate_maps(self):
        updated = apply_updates({"votes": {}}, {"votes.PAC.score": 1})

        assert updated == {"votes": {"PAC": {"score": 1}}}

    def test_inputs_not_mutated(self):
        existing = {"a": {"x": 1}}

        merge_document(existing, {"a": {"x": 2}})
        apply_updates(existing, {"a.x": 3})

        assert existing == {"a": {"x": 1}}


@pytest.mark.unit
@pytest.mark.asyncio
class TestInMemoryStore:
    async def test_satisfies_protocol(self, store):
        assert isinstance(store, DocumentStore)

    async def test_set_replace_and_merge(self, store):
        await store.set_document("c", "d", {"a": 1, "b": 2})
        await store.set_document("c", "d", {"a": 9}, merge=True)
        assert await store.get_document("c", "d") == {"a": 9, "b": 2}

        await store.set_document("c", "d", {"z": 0})
        assert await store.get_document("c", "d") == {"z": 0}

    async def test_returned_documents_are_copies(self, store):
        await store.set_document("c", "d", {"nested": {"v": 1}})

        document = await store.get_document("c", "d")
        document["nested"]["v"] = 99

        assert (await store.get_document("c", "d"))["nested"]["v"] == 1

    async def test_update_missing_document_raises(self, store):
        with pytest.raises(NotFoundError):
            await store.update_document("c", "missing", {"a": 1})

    async def test_delete_reports_existence(self, store):
        await store.set_document("c", "d", {"a": 1})

        assert await store.delete_document("c", "d") is True
        assert await store.delete_document("c", "d") is False

    async def test_list_includes_ids_in_insertion_order(self, store):
        await store.set_document("c", "second", {"v": 2})
        await store.set_document("c", "first", {"v": 1})

        listed = await store.list_documents("c")

        assert [doc["id"] for doc in listed] == ["second", "first"]
        assert await store.list_documents("empty") == []

    async def test_concurrent_increments(self, store):
        await asyncio.gather(*(store.atomic_increment("c", "d", "n", 1) for _ in range(100)))

        assert (await store.get_document("c", "d"))["n"] == 100

    async def test_increment_returns_new_value(self, store):
        assert await store.atomic_increment("c", "d", "stats.goals", 2) == 2
        assert await store.atomic_increment("c", "d", "stats.goals", 1) == 3


@pytest.mark.unit
@pytest.mark.asyncio
class TestSubscriptions:
    async def test_document_subscription(self, store):
        seen = []
        await store.subscribe("c", seen.append, doc_id="d")

        await store.set_document("c", "d", {"v": 1})
        await store.set_document("c", "other", {"v": 2})
        await store.delete_document("c", "d")

        assert seen == [None, {"v": 1}, None]

    async def test_collection_subscription(self, store):
        seen = []
        await store.subscribe("c", lambda docs: seen.append(len(docs)))

        await store.set_document("c", "a", {})
        await store.set_document("c", "b", {})
        await store.set_document("other", "x", {})

        assert seen == [0, 1, 2]

    async def test_no_callbacks_after_unsubscribe(self, store):
        seen = []
        subscription = await store.subscribe("c", seen.append, doc_id="d")

        subscription.unsubscribe()
        await store.set_document("c", "d", {"v": 1})

        assert seen == [None]
        assert not subscription.active
        assert store.subscription_count() == 0

    async def test_async_callbacks_awaited(self, store):
        seen = []

        async def on_change(snapshot):
            await asyncio.sleep(0)
            seen.append(snapshot)

        await store.subscribe("c", on_change, doc_id="d")
        await store.set_document("c", "d", {"v": 1})

        assert seen == [None, {"v": 1}]

    async def test_failing_callback_does_not_break_writer(self, store):
        def explode(snapshot):
            raise RuntimeError("listener bug")

        await store.subscribe("c", explode, doc_id="d")
        await store.set_document("c", "d", {"v": 1})

        assert await store.get_document("c", "d") == {"v": 1}

    async def test_close_cancels_everything(self):
        memory_store = InMemoryDocumentStore()
        seen = []
        await memory_store.subscribe("c", seen.append)

        await memory_store.close()
        await memory_store.set_document("c", "d", {})

        assert seen == [[]]
