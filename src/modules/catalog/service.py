"""
CatalogService - catalog entries ("players" collection)
=======================================================

Handles:
- Listing and reading catalog entries
- Admin-gated create/update and delete
- Automatic overall rating for entries in `auto` rating mode
- Real-time catalog subscriptions

Votes and match statistics are owned by other services; an admin edit keeps
whatever votes and stats are already stored for the entry.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Union

from src.domain.models.base import DomainValidationError
from src.domain.models.player import CatalogEntry
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.core.store.base import DocumentStore, SnapshotCallback, Subscription
    from src.modules.profile.service import ProfileService

CATALOG_COLLECTION = "players"


class CatalogService(BaseService):
    """Catalog CRUD; reads are open to everyone, writes need the admin role."""

    def __init__(
        self,
        store: DocumentStore,
        profiles: ProfileService,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._profiles = profiles
        self._repo: BaseRepository[CatalogEntry] = BaseRepository(
            store, CATALOG_COLLECTION, CatalogEntry.from_document, logger
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_entries(self) -> List[CatalogEntry]:
        return await self._repo.list_all()

    async def get_entry(self, entry_id: str) -> Optional[CatalogEntry]:
        self.validate_identifier(entry_id, "entry_id")
        return await self._repo.get(entry_id)

    async def require_entry(self, entry_id: str) -> CatalogEntry:
        entry = await self.get_entry(entry_id)
        if entry is None:
            raise NotFoundError("Catalog entry", entry_id)
        return entry

    async def exists(self, entry_id: str) -> bool:
        return await self._repo.exists(entry_id)

    # -------------------------------------------------------------------------
    # Admin writes
    # -------------------------------------------------------------------------

    async def save_entry(
        self,
        actor_id: str,
        entry: Union[CatalogEntry, Mapping[str, Any]],
    ) -> CatalogEntry:
        """
        Create or replace a catalog entry. Admin-only.

        An entry without an id gets a generated one. Entries in `auto` rating
        mode get their rating recomputed from stats before validation.

        Raises:
            NotAuthorizedError: Actor is not an admin
            ValidationError: Rating or stats outside 1-99, empty name, unknown position
        """
        await self._profiles.require_admin(actor_id, "save_catalog_entry")

        try:
            if not isinstance(entry, CatalogEntry):
                entry = CatalogEntry.from_document(entry)
            if not entry.id:
                entry.id = f"pl_{uuid.uuid4().hex[:16]}"
            entry.apply_rating_mode()
            entry.validate()
        except DomainValidationError as exc:
            raise ValidationError(exc.field or "entry", str(exc)) from exc
        except (TypeError, ValueError) as exc:
            raise ValidationError("entry", str(exc)) from exc

        existing = await self._repo.get(entry.id)
        if existing is not None:
            if not entry.votes:
                entry.votes = existing.votes
            entry.game_stats = existing.game_stats

        self.log_operation(
            "save_catalog_entry",
            user_id=actor_id,
            entry_id=entry.id,
            rating=entry.rating,
            rating_mode=entry.rating_mode.value,
            created=existing is None,
        )

        await self._repo.save(entry.id, entry.to_document())

        await self.emit_event(
            "catalog.saved",
            {
                "entry_id": entry.id,
                "actor_id": actor_id,
                "rating": entry.rating,
                "created": existing is None,
            },
        )
        return entry

    async def delete_entry(self, actor_id: str, entry_id: str) -> bool:
        """
        Delete a catalog entry. Admin-only.

        Returns:
            True if an entry was deleted, False if it did not exist.
        """
        await self._profiles.require_admin(actor_id, "delete_catalog_entry")
        self.validate_identifier(entry_id, "entry_id")

        self.log_operation("delete_catalog_entry", user_id=actor_id, entry_id=entry_id)
        deleted = await self._repo.delete(entry_id)

        if deleted:
            await self.emit_event(
                "catalog.deleted", {"entry_id": entry_id, "actor_id": actor_id}
            )
        return deleted

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe(self, callback: SnapshotCallback) -> Subscription:
        """Push the full catalog (list of entries) now and after every change."""

        def _on_snapshot(documents):
            return callback(self._repo.decode_all(documents or []))

        return await self._store.subscribe(CATALOG_COLLECTION, _on_snapshot)
