"""
Unit tests for InventoryService: per-user owned instances.
"""

import pytest

from src.modules.inventory.service import inventory_collection
from tests.conftest import catalog_document, seed_catalog, seed_user


@pytest.mark.unit
@pytest.mark.asyncio
class TestInventory:
    async def test_remove_deletes_one_instance(self, container):
        """Removing an instance leaves the rest of the inventory in place."""
        await seed_catalog(container.store, catalog_document("pl_1", 80))
        await seed_user(container, "u1", currency=2)
        first = await container.packs.open_pack("u1")
        second = await container.packs.open_pack("u1")

        assert await container.inventory.remove("u1", first.id) is True
        assert await container.inventory.remove("u1", first.id) is False

        assert [i.id for i in await container.inventory.list_instances("u1")] == [second.id]
        assert await container.store.get_document(inventory_collection("u1"), first.id) is None

    async def test_resolve_prefers_inventory(self, container):
        """Instance ids resolve from the inventory, template ids from the catalog."""
        await seed_catalog(container.store, catalog_document("pl_1", 80))
        await seed_user(container, "u1", currency=1)
        instance = await container.packs.open_pack("u1")

        from_inventory = await container.inventory.resolve_entity("u1", instance.id)
        from_catalog = await container.inventory.resolve_entity("u1", "pl_1")

        assert from_inventory == instance
        assert from_catalog.id == "pl_1"
        assert await container.inventory.resolve_entity("u1", "nothing") is None

    async def test_inventories_are_per_user(self, container):
        """One user cannot see or remove another user's cards."""
        await seed_catalog(container.store, catalog_document("pl_1", 80))
        await seed_user(container, "u1", currency=1)
        instance = await container.packs.open_pack("u1")

        assert await container.inventory.list_instances("u2") == []
        assert await container.inventory.remove("u2", instance.id) is False
        assert await container.inventory.get_by_id("u1", instance.id) == instance

    async def test_subscription_follows_adds_and_removes(self, container):
        """Subscribers get the initial list and one snapshot per change."""
        await seed_catalog(container.store, catalog_document("pl_1", 80))
        await seed_user(container, "u1", currency=1)
        sizes = []
        await container.inventory.subscribe("u1", lambda items: sizes.append(len(items)))

        instance = await container.packs.open_pack("u1")
        await container.packs.quick_sell("u1", instance.id)

        assert sizes == [0, 1, 0]
