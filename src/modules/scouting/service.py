"""
ScoutingService - community stat votes
======================================

Handles:
- Up/down votes on one attribute of a catalog entry
- Community score (sum of all attribute scores)

Each cast is a read of the entry followed by a write of that attribute's
whole vote bucket (`votes.<ATTR>`). Two sessions racing on the same bucket
can lose an update; the store offers no compare-and-swap at this level and
the small trusted user base makes that acceptable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.domain.models.player import CatalogEntry, VoteBucket, attributes_for_role
from src.modules.catalog.service import CATALOG_COLLECTION
from src.modules.scouting.vote_logic import apply_vote, is_valid_direction
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import InvalidDirectionError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.core.store.base import DocumentStore
    from src.modules.catalog.service import CatalogService


class ScoutingService(BaseService):
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

    async def cast_vote(
        self,
        entity_id: str,
        attribute: str,
        voter_id: str,
        direction: str,
    ) -> CatalogEntry:
        """
        Cast, flip or withdraw `voter_id`'s vote on one attribute.

        Returns:
            The entry with its updated vote map.

        Raises:
            InvalidDirectionError: direction is not "up"/"down" (nothing is read or written)
            ValidationError: attribute is not part of the entry's stat schema
            NotFoundError: entry does not exist
        """
        if not is_valid_direction(direction):
            raise InvalidDirectionError(direction)
        self.validate_identifier(voter_id, "voter_id")

        entry = await self._catalog.require_entry(entity_id)

        attribute = str(attribute).upper()
        if attribute not in attributes_for_role(entry.role):
            raise ValidationError(
                "attribute",
                f"{attribute!r} is not a {entry.role.value} attribute",
            )

        bucket = entry.votes.get(attribute, VoteBucket())
        updated, outcome = apply_vote(bucket, voter_id, direction)

        self.log_operation(
            "cast_vote",
            user_id=voter_id,
            entity_id=entity_id,
            attribute=attribute,
            direction=direction,
            outcome=outcome.value,
        )

        await self._store.update_document(
            CATALOG_COLLECTION, entity_id, {f"votes.{attribute}": updated.to_document()}
        )
        entry.votes[attribute] = updated

        await self.emit_event(
            "scouting.vote_cast",
            {
                "entity_id": entity_id,
                "attribute": attribute,
                "voter_id": voter_id,
                "direction": direction,
                "outcome": outcome.value,
                "score": updated.score,
            },
        )
        return entry

    async def community_score(self, entity_id: str) -> int:
        entry = await self._catalog.require_entry(entity_id)
        return entry.community_score
