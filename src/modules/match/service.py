"""
MatchService - finished match results
=====================================

Handles:
- Persisting a match result (`matches/{match_id}`)
- Rewarding the recorder through the ledger (`match.reward`)
- Updating play stats of every participating entity

Stat updates are additive `Increment` merges on `gameStats`, so two
recorders touching the same entity never overwrite each other. Entities are
looked up in the recorder's inventory first, then in the catalog; ids found
in neither are skipped with a warning.
"""

from __future__ import annotations

import time
import uuid
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from src.core.store.base import Increment
from src.domain.models.base import DomainValidationError
from src.domain.models.inventory import OwnedInstance
from src.domain.models.match import GoalEvent, MatchRecord, MatchSide, Side
from src.domain.models.player import Position
from src.modules.catalog.service import CATALOG_COLLECTION
from src.modules.inventory.service import inventory_collection
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.core.store.base import DocumentStore
    from src.modules.inventory.service import InventoryService
    from src.modules.ledger.service import LedgerService

MATCHES_COLLECTION = "matches"

SideInput = Union[MatchSide, Mapping[str, Any]]
EventInput = Union[GoalEvent, Mapping[str, Any]]


class MatchService(BaseService):
    def __init__(
        self,
        store: DocumentStore,
        ledger: LedgerService,
        inventory: InventoryService,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._ledger = ledger
        self._inventory = inventory
        self._clock = clock

    async def record_match(
        self,
        recorder_id: str,
        home: SideInput,
        away: SideInput,
        home_score: int,
        away_score: int,
        events: Optional[Iterable[EventInput]] = None,
        duration_seconds: int = 0,
    ) -> MatchRecord:
        """
        Persist a finished match, reward the recorder and update play stats.

        Raises:
            ValidationError: Negative scores/duration, malformed events, or
                more goal events for a side than its score
        """
        self.validate_identifier(recorder_id, "recorder_id")
        self.validate_non_negative_int(home_score, "home_score")
        self.validate_non_negative_int(away_score, "away_score")
        self.validate_non_negative_int(duration_seconds, "duration_seconds")

        now = self._clock()
        try:
            match = MatchRecord(
                id=f"m_{int(now * 1000)}_{uuid.uuid4().hex[:8]}",
                recorded_by=recorder_id,
                home=_coerce_side(home),
                away=_coerce_side(away),
                home_score=home_score,
                away_score=away_score,
                duration_seconds=duration_seconds,
                played_at=now,
                events=[_coerce_event(event) for event in events or []],
            )
            match.validate()
        except DomainValidationError as exc:
            raise ValidationError(exc.field or "match", str(exc)) from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError("match", f"malformed match data: {exc}") from exc

        self.log_operation(
            "record_match",
            user_id=recorder_id,
            match_id=match.id,
            score=f"{home_score}-{away_score}",
        )

        await self._store.set_document(MATCHES_COLLECTION, match.id, match.to_document())

        reward = self.get_config("match.reward", 1)
        await self._ledger.adjust_balance(recorder_id, reward, reason="match_recorded")

        updated = await self._apply_play_stats(recorder_id, match)

        await self.emit_event(
            "match.recorded",
            {
                "match_id": match.id,
                "recorder_id": recorder_id,
                "home_score": home_score,
                "away_score": away_score,
                "reward": reward,
                "updated_entities": updated,
            },
        )
        return match

    async def list_matches(self) -> List[MatchRecord]:
        """Recorded matches, most recent first."""
        documents = await self._store.list_documents(MATCHES_COLLECTION)
        matches = [MatchRecord.from_document(document) for document in documents]
        return sorted(reversed(matches), key=lambda match: -match.played_at)

    async def _apply_play_stats(self, recorder_id: str, match: MatchRecord) -> int:
        deltas = play_stat_deltas(match)
        clean_sheet_sides = [side for side in Side if match.goals_against(side) == 0]

        updated = 0
        for entity_id, delta in deltas.items():
            entity = await self._inventory.resolve_entity(recorder_id, entity_id)
            if entity is None:
                self.log.warning(
                    "Match participant not found; play stats skipped",
                    extra={"match_id": match.id, "entity_id": entity_id},
                )
                continue

            if entity.position is Position.GK:
                for side in clean_sheet_sides:
                    if entity_id in match.side(side).entity_ids:
                        delta["cleanSheets"] += 1

            collection = (
                inventory_collection(recorder_id)
                if isinstance(entity, OwnedInstance)
                else CATALOG_COLLECTION
            )
            increments = {key: Increment(value) for key, value in delta.items() if value}
            await self._store.set_document(
                collection, entity_id, {"gameStats": increments}, merge=True
            )
            updated += 1
        return updated


def play_stat_deltas(match: MatchRecord) -> Dict[str, Dict[str, int]]:
    """Per-entity increments for played/won/goals/assists (clean sheets need positions)."""
    deltas: Dict[str, Dict[str, int]] = defaultdict(
        lambda: {"played": 0, "won": 0, "goals": 0, "assists": 0, "cleanSheets": 0}
    )
    winner = match.winner

    for side in Side:
        for entity_id in match.side(side).entity_ids:
            deltas[entity_id]["played"] += 1
            if side is winner:
                deltas[entity_id]["won"] += 1

    for event in match.events:
        deltas[event.scorer_id]["goals"] += 1
        if event.assist_id:
            deltas[event.assist_id]["assists"] += 1

    return dict(deltas)


def _coerce_side(side: SideInput) -> MatchSide:
    if isinstance(side, MatchSide):
        return side
    return MatchSide.from_document(side)


def _coerce_event(event: EventInput) -> GoalEvent:
    if isinstance(event, GoalEvent):
        return event
    return GoalEvent.from_document(event)
