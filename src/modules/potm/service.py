"""
ElectionService - Player of the Match
=====================================

Handles:
- Round lifecycle: start (admin), ballots, end (admin)
- Ballot eligibility: the voter must have a linked entity
- Winner history (`potm_history`), newest first
- State subscriptions for the UI layer

State lives in one document per scope: `potm/{scope}`. Starting a round
while another is active resets it and drops its ballots. Ending a round
always appends exactly one history record, even with no ballots; what that
record names as winner is controlled by `potm.empty_round_fallback`:

- "first_catalog_entry": the first catalog entry, with 0 votes
- "none": no winner, 0 votes
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING, Callable, List, Optional

from src.domain.models.election import ElectionRecord, ElectionState
from src.modules.potm.tally_logic import pick_winner, tally_ballots
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    InvalidBallotTargetError,
    InvalidOperationError,
    NotAuthorizedError,
)

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.core.store.base import DocumentStore, SnapshotCallback, Subscription
    from src.modules.catalog.service import CatalogService
    from src.modules.profile.service import ProfileService

POTM_COLLECTION = "potm"
POTM_HISTORY_COLLECTION = "potm_history"

FALLBACK_FIRST_CATALOG_ENTRY = "first_catalog_entry"
FALLBACK_NONE = "none"


def _new_round_id(now: float) -> str:
    return f"r_{int(now * 1000)}_{uuid.uuid4().hex[:8]}"


class ElectionService(BaseService):
    def __init__(
        self,
        store: DocumentStore,
        profiles: ProfileService,
        catalog: CatalogService,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._store = store
        self._profiles = profiles
        self._catalog = catalog
        self._clock = clock

    @property
    def scope(self) -> str:
        return self.get_config("potm.scope", "current")

    async def get_state(self) -> ElectionState:
        document = await self._store.get_document(POTM_COLLECTION, self.scope)
        return ElectionState.from_document(self.scope, document)

    async def _save_state(self, state: ElectionState) -> None:
        await self._store.set_document(POTM_COLLECTION, state.scope, state.to_document())

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start_round(self, actor_id: str, round_label: str) -> ElectionState:
        """
        Open a round. Admin-only.

        An active round is discarded: its ballots are cleared and no history
        record is written for it.
        """
        await self._profiles.require_admin(actor_id, "start_round")
        self.validate_identifier(round_label, "round_label")

        state = await self.get_state()
        if state.is_active:
            self.log.warning(
                "Active round replaced before it was ended",
                extra={
                    "user_id": actor_id,
                    "previous_round": state.round_label,
                    "discarded_ballots": len(state.ballots),
                },
            )

        now = self._clock()
        state.start(round_label, now, round_id=_new_round_id(now))
        self.log_operation("start_round", user_id=actor_id, round_label=round_label)
        await self._save_state(state)

        await self.emit_event(
            "potm.round_started",
            {"scope": state.scope, "round_label": round_label, "actor_id": actor_id},
        )
        return state

    async def cast_ballot(self, voter_id: str, entity_id: str) -> ElectionState:
        """
        Record (or replace) `voter_id`'s ballot in the active round.

        Raises:
            InvalidOperationError: No round is active
            NotAuthorizedError: Voter has no linked entity
            InvalidBallotTargetError: Target is neither a catalog entry nor
                any user's linked entity
        """
        self.validate_identifier(voter_id, "voter_id")
        if not isinstance(entity_id, str) or not entity_id.strip():
            raise InvalidBallotTargetError(str(entity_id))

        state = await self.get_state()
        if not state.is_active:
            raise InvalidOperationError("cast_ballot", "no election round is active")

        voter = await self._profiles.get_profile(voter_id)
        if voter is None or not voter.linked_entity_id:
            self.log.warning(
                "Ballot rejected: voter has no linked entity",
                extra={"user_id": voter_id, "entity_id": entity_id},
            )
            raise NotAuthorizedError(voter_id, "cast_ballot")

        if not await self._is_ballot_target(entity_id):
            raise InvalidBallotTargetError(entity_id)

        previous = state.ballots.get(voter_id)
        state.ballots[voter_id] = entity_id

        self.log_operation(
            "cast_ballot",
            user_id=voter_id,
            entity_id=entity_id,
            previous_entity_id=previous,
            round_label=state.round_label,
        )
        await self._store.update_document(
            POTM_COLLECTION, state.scope, {"ballots": dict(state.ballots)}
        )

        await self.emit_event(
            "potm.ballot_cast",
            {
                "scope": state.scope,
                "round_label": state.round_label,
                "voter_id": voter_id,
                "entity_id": entity_id,
                "changed": previous is not None and previous != entity_id,
            },
        )
        return state

    async def end_round(self, actor_id: str) -> ElectionRecord:
        """
        Close the active round, record its winner and return to idle. Admin-only.

        Raises:
            NotAuthorizedError: Actor is not an admin
            InvalidOperationError: No round is active
        """
        await self._profiles.require_admin(actor_id, "end_round")

        state = await self.get_state()
        if not state.is_active:
            raise InvalidOperationError("end_round", "no election round is active")

        winner = pick_winner(tally_ballots(state.ballots))
        if winner is None:
            winner_id = await self._empty_round_winner()
            vote_count = 0
            self.log.warning(
                "Round ended with no ballots",
                extra={"round_label": state.round_label, "fallback_winner": winner_id},
            )
        else:
            winner_id, vote_count = winner

        now = self._clock()
        record = ElectionRecord(
            id=state.round_id or f"r_{int((state.started_at or now) * 1000)}",
            round_label=state.round_label,
            winner_entity_id=winner_id,
            winning_vote_count=vote_count,
            concluded_at=now,
        )
        await self._store.set_document(POTM_HISTORY_COLLECTION, record.id, record.to_document())

        state.reset()
        await self._save_state(state)

        await self.emit_event(
            "potm.round_ended",
            {
                "scope": state.scope,
                "round_label": record.round_label,
                "winner_entity_id": record.winner_entity_id,
                "winning_vote_count": record.winning_vote_count,
            },
        )

        self.log.info(
            "Round concluded",
            extra={
                "user_id": actor_id,
                "round_label": record.round_label,
                "winner_entity_id": record.winner_entity_id,
                "winning_vote_count": record.winning_vote_count,
                "success": True,
            },
        )
        return record

    async def _empty_round_winner(self) -> Optional[str]:
        policy = self.get_config("potm.empty_round_fallback", FALLBACK_FIRST_CATALOG_ENTRY)
        if policy == FALLBACK_NONE:
            return None

        entries = await self._catalog.list_entries()
        return entries[0].id if entries else None

    async def _is_ballot_target(self, entity_id: str) -> bool:
        if await self._catalog.exists(entity_id):
            return True
        return await self._profiles.find_by_linked_entity(entity_id) is not None

    # -------------------------------------------------------------------------
    # History / subscriptions
    # -------------------------------------------------------------------------

    async def list_history(self) -> List[ElectionRecord]:
        """Concluded rounds, most recent first."""
        documents = await self._store.list_documents(POTM_HISTORY_COLLECTION)
        records = [ElectionRecord.from_document(document) for document in documents]
        return sorted(reversed(records), key=lambda record: -record.concluded_at)

    async def subscribe_state(self, callback: SnapshotCallback) -> Subscription:
        """Push an `ElectionState` after every write to the scope's document."""
        scope = self.scope

        def _on_snapshot(document):
            return callback(ElectionState.from_document(scope, document))

        return await self._store.subscribe(POTM_COLLECTION, _on_snapshot, doc_id=scope)
