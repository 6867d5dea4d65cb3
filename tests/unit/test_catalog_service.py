"""
Unit tests for CatalogService.
"""

import pytest

from src.domain.models.player import CatalogEntry, Position
from src.modules.catalog.service import CATALOG_COLLECTION
from src.modules.shared.exceptions import NotAuthorizedError, NotFoundError, ValidationError
from tests.conftest import catalog_document, outfield_stats, seed_catalog, seed_user


@pytest.mark.unit
@pytest.mark.asyncio
class TestCatalogReads:
    async def test_list_in_insertion_order(self, container):
        await seed_catalog(
            container.store, catalog_document("b", 70), catalog_document("a", 90)
        )

        entries = await container.catalog.list_entries()

        assert [entry.id for entry in entries] == ["b", "a"]

    async def test_list_skips_undecodable_documents(self, container):
        """Unknown positions or card types drop the document from listings."""
        await seed_catalog(
            container.store,
            catalog_document("good", 80),
            {"id": "bad_position", "position": "XX", "rating": 90},
            catalog_document("bad_card", 85, cardType="platinum"),
            {"id": "legacy", "position": "IV", "rating": 75},
        )

        entries = await container.catalog.list_entries()

        assert [entry.id for entry in entries] == ["good", "legacy"]
        assert entries[1].position is Position.CB

    async def test_require_missing_entry(self, container):
        with pytest.raises(NotFoundError):
            await container.catalog.require_entry("missing")

        assert await container.catalog.get_entry("missing") is None
        assert not await container.catalog.exists("missing")


@pytest.mark.unit
@pytest.mark.asyncio
class TestCatalogWrites:
    async def test_admin_creates_entry_with_generated_id(self, container, events):
        events.listen("catalog.saved")
        await seed_user(container, "admin", admin=True)
        document = catalog_document("", 1, ratingMode="auto", stats=outfield_stats(82))

        entry = await container.catalog.save_entry("admin", document)

        assert entry.id.startswith("pl_")
        assert entry.rating == 82
        assert await container.catalog.exists(entry.id)
        assert events.payloads["catalog.saved"][0]["created"] is True

    async def test_non_admin_cannot_save(self, container):
        await seed_user(container, "u1")

        with pytest.raises(NotAuthorizedError):
            await container.catalog.save_entry("u1", catalog_document("pl_1", 80))

        assert not await container.catalog.exists("pl_1")

    async def test_invalid_rating_rejected(self, container):
        await seed_user(container, "admin", admin=True)

        with pytest.raises(ValidationError):
            await container.catalog.save_entry("admin", catalog_document("pl_1", 150))

    async def test_unknown_position_rejected(self, container):
        await seed_user(container, "admin", admin=True)

        with pytest.raises(ValidationError):
            await container.catalog.save_entry(
                "admin", catalog_document("pl_1", 80, position="SW")
            )

    async def test_edit_keeps_votes_and_play_stats(self, container):
        await seed_user(container, "admin", admin=True)
        await seed_catalog(
            container.store,
            catalog_document(
                "pl_1",
                80,
                votes={"PAC": {"score": 1, "voterChoices": {"x": "up"}}},
                gameStats={"played": 3, "won": 1, "goals": 2, "assists": 0, "cleanSheets": 0},
            ),
        )
        edited = CatalogEntry.from_document(catalog_document("pl_1", 84, name="Renamed"))

        await container.catalog.save_entry("admin", edited)

        stored = await container.catalog.require_entry("pl_1")
        assert stored.name == "Renamed"
        assert stored.rating == 84
        assert stored.votes["PAC"].score == 1
        assert stored.game_stats.played == 3

    async def test_delete(self, container, events):
        events.listen("catalog.deleted")
        await seed_user(container, "admin", admin=True)
        await seed_catalog(container.store, catalog_document("pl_1", 80))

        assert await container.catalog.delete_entry("admin", "pl_1") is True
        assert await container.catalog.delete_entry("admin", "pl_1") is False
        assert len(events.payloads["catalog.deleted"]) == 1

    async def test_non_admin_cannot_delete(self, container):
        await seed_user(container, "u1")
        await seed_catalog(container.store, catalog_document("pl_1", 80))

        with pytest.raises(NotAuthorizedError):
            await container.catalog.delete_entry("u1", "pl_1")

        assert await container.store.get_document(CATALOG_COLLECTION, "pl_1") is not None


@pytest.mark.unit
@pytest.mark.asyncio
class TestCatalogSubscription:
    async def test_subscriber_receives_entries(self, container):
        snapshots = []
        subscription = await container.catalog.subscribe(
            lambda entries: snapshots.append([e.id for e in entries])
        )

        await seed_catalog(container.store, catalog_document("pl_1", 80))
        subscription.unsubscribe()
        await seed_catalog(container.store, catalog_document("pl_2", 80))

        assert snapshots == [[], ["pl_1"]]
