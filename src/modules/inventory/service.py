"""
InventoryService - per-user owned instances
===========================================

Plain CRUD over `users/{user_id}/inventory`, plus the lookup used by match
and voting flows: an id is resolved against the user's inventory first and
the shared catalog second, since callers do not know which one holds it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Union

from src.domain.models.inventory import OwnedInstance
from src.domain.models.player import CatalogEntry
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.core.store.base import DocumentStore, SnapshotCallback, Subscription
    from src.modules.catalog.service import CatalogService


def inventory_collection(user_id: str) -> str:
    return f"users/{user_id}/inventory"


class InventoryService(BaseService):
    def __init__(
        self,
        store: DocumentStore,
        catalog: CatalogService,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._catalog = catalog

    async def add(self, user_id: str, instance: OwnedInstance) -> OwnedInstance:
        self.validate_identifier(user_id, "user_id")

        await self._store.set_document(
            inventory_collection(user_id), instance.id, instance.to_document()
        )
        await self.emit_event(
            "inventory.added",
            {
                "user_id": user_id,
                "instance_id": instance.id,
                "template_id": instance.template_id,
                "rating": instance.rating,
            },
        )
        return instance

    async def remove(self, user_id: str, instance_id: str) -> bool:
        """Delete one instance; returns False when it was not in the inventory."""
        self.validate_identifier(user_id, "user_id")
        self.validate_identifier(instance_id, "instance_id")

        removed = await self._store.delete_document(inventory_collection(user_id), instance_id)
        if removed:
            await self.emit_event(
                "inventory.removed", {"user_id": user_id, "instance_id": instance_id}
            )
        return removed

    async def list_instances(self, user_id: str) -> List[OwnedInstance]:
        self.validate_identifier(user_id, "user_id")
        documents = await self._store.list_documents(inventory_collection(user_id))
        return [OwnedInstance.from_document(doc, owner_id=user_id) for doc in documents]

    async def get_by_id(self, user_id: str, instance_id: str) -> Optional[OwnedInstance]:
        self.validate_identifier(user_id, "user_id")
        document = await self._store.get_document(inventory_collection(user_id), instance_id)
        if document is None:
            return None
        document.setdefault("id", instance_id)
        return OwnedInstance.from_document(document, owner_id=user_id)

    async def resolve_entity(
        self, user_id: str, entity_id: str
    ) -> Optional[Union[OwnedInstance, CatalogEntry]]:
        """Inventory first, then catalog; None if neither holds the id."""
        instance = await self.get_by_id(user_id, entity_id)
        if instance is not None:
            return instance
        return await self._catalog.get_entry(entity_id)

    async def subscribe(self, user_id: str, callback: SnapshotCallback) -> Subscription:
        self.validate_identifier(user_id, "user_id")

        def _on_snapshot(documents):
            return callback(
                [OwnedInstance.from_document(doc, owner_id=user_id) for doc in documents or []]
            )

        return await self._store.subscribe(inventory_collection(user_id), _on_snapshot)
