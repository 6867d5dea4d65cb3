"""
Unit Tests for the Ultimate Manager Domain Models
=================================================

Test Coverage
-------------
- Positions, roles and the stat-block tagged union
- Overall rating from position weights
- Catalog entry validation and document mapping
- Owned instance snapshots
- Election state transitions
- Match validation and results

Testing Strategy
----------------
- Pure model tests, no store
- One behavior per test
"""

import pytest

from src.domain.models import (
    CatalogEntry,
    ElectionPhase,
    ElectionState,
    GoalEvent,
    GoalkeeperStats,
    MatchRecord,
    MatchSide,
    OutfieldStats,
    OwnedInstance,
    Position,
    RatingMode,
    Role,
    Side,
    UserProfile,
    UserRole,
    VoteBucket,
)
from src.domain.models.base import DomainValidationError
from src.domain.models.player import calculate_overall, role_for_position
from tests.conftest import catalog_document, outfield_stats


# ============================================================================
# POSITIONS AND STATS
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestPositions:
    def test_parse_is_case_insensitive(self):
        assert Position.parse("st") is Position.ST
        assert Position.parse("Gk") is Position.GK

    def test_legacy_codes_map_to_current_positions(self):
        """Older stored codes decode to their modern equivalents."""
        assert Position.parse("TW") is Position.GK
        assert Position.parse("iv") is Position.CB
        assert Position.parse("ZOM") is Position.CAM
        assert Position.parse("MS") is Position.CF

    def test_unknown_position_rejected(self):
        with pytest.raises(DomainValidationError) as exc_info:
            Position.parse("SW")
        assert exc_info.value.field == "position"

    def test_only_goalkeepers_use_goalkeeper_role(self):
        assert role_for_position(Position.GK) is Role.GOALKEEPER
        for position in Position:
            if position is not Position.GK:
                assert role_for_position(position) is Role.OUTFIELD

    def test_missing_stats_default_to_fifty(self):
        stats = OutfieldStats.from_mapping({"PAC": 80})

        assert stats.PAC == 80
        assert stats.SHO == 50

    def test_stat_range_enforced(self):
        with pytest.raises(DomainValidationError):
            OutfieldStats(PAC=100).validate()
        with pytest.raises(DomainValidationError):
            GoalkeeperStats(DIV=0).validate()


@pytest.mark.unit
@pytest.mark.domain
class TestOverallRating:
    def test_uniform_stats_give_that_rating(self):
        assert calculate_overall(Position.CM, OutfieldStats(*([77] * 6))) == 77
        assert calculate_overall(Position.GK, GoalkeeperStats(*([64] * 6))) == 64

    def test_striker_weights_favour_shooting(self):
        stats = OutfieldStats(PAC=60, SHO=90, PAS=60, DRI=60, DEF=60, PHY=60)

        assert calculate_overall(Position.ST, stats) == 75
        assert calculate_overall(Position.CB, stats) == 60

    def test_goalkeeper_speed_is_ignored(self):
        slow = GoalkeeperStats(DIV=80, HAN=80, KIC=80, REF=80, SPE=10, POS=80)
        fast = GoalkeeperStats(DIV=80, HAN=80, KIC=80, REF=80, SPE=99, POS=80)

        assert calculate_overall(Position.GK, slow) == calculate_overall(Position.GK, fast) == 80


# ============================================================================
# CATALOG ENTRY
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestCatalogEntry:
    def test_document_round_trip_keeps_votes(self):
        document = catalog_document(
            "pl_1", 85, votes={"PAC": {"score": 2, "voterChoices": {"a": "up", "b": "up"}}}
        )

        entry = CatalogEntry.from_document(document)

        assert entry.votes["PAC"] == VoteBucket(score=2, voter_choices={"a": "up", "b": "up"})
        assert entry.community_score == 2
        assert CatalogEntry.from_document(entry.to_document()) == entry

    def test_goalkeeper_gets_goalkeeper_stats(self):
        entry = CatalogEntry.from_document(catalog_document("gk", 80, position="GK"))

        assert isinstance(entry.stats, GoalkeeperStats)
        assert entry.role is Role.GOALKEEPER

    def test_auto_rating_recomputed(self):
        entry = CatalogEntry.from_document(
            catalog_document("pl_1", 10, ratingMode="auto", stats=outfield_stats(70))
        )

        entry.apply_rating_mode()

        assert entry.rating == 70

    def test_manual_rating_kept(self):
        entry = CatalogEntry.from_document(catalog_document("pl_1", 10))

        entry.apply_rating_mode()

        assert entry.rating_mode is RatingMode.MANUAL
        assert entry.rating == 10

    def test_validate_rejects_mismatched_stats(self):
        entry = CatalogEntry.from_document(catalog_document("pl_1", 80))
        entry.stats = GoalkeeperStats()

        with pytest.raises(DomainValidationError):
            entry.validate()

    def test_validate_rejects_out_of_range_rating(self):
        entry = CatalogEntry.from_document(catalog_document("pl_1", 80))
        entry.rating = 120

        with pytest.raises(DomainValidationError):
            entry.validate()


# ============================================================================
# OWNED INSTANCE
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestOwnedInstance:
    def test_snapshot_from_template(self):
        template = CatalogEntry.from_document(
            catalog_document("pl_1", 91, gameStats={"played": 12, "won": 7})
        )

        instance = OwnedInstance.from_template(template, "p_1_abc", "user-1", 100.0)

        assert instance.template_id == "pl_1"
        assert instance.owner_id == "user-1"
        assert instance.rating == 91
        assert instance.stats == template.stats
        assert instance.game_stats.played == 0
        assert instance.votes == {}

    def test_instance_id_must_differ_from_template(self):
        template = CatalogEntry.from_document(catalog_document("pl_1", 91))

        with pytest.raises(ValueError):
            OwnedInstance.from_template(template, "pl_1", "user-1", 100.0)

    def test_document_keys(self):
        template = CatalogEntry.from_document(catalog_document("pl_1", 91))
        document = OwnedInstance.from_template(template, "p_1_abc", "u", 5.0).to_document()

        assert document["templateId"] == "pl_1"
        assert document["ownerId"] == "u"
        assert document["acquiredAt"] == 5.0


# ============================================================================
# USER / ELECTION / MATCH
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestUserProfile:
    def test_missing_fields_default(self):
        profile = UserProfile.from_document("u1", {})

        assert profile.role is UserRole.USER
        assert profile.currency == 0
        assert profile.linked_entity_id is None
        assert not profile.is_admin


@pytest.mark.unit
@pytest.mark.domain
class TestElectionState:
    def test_start_clears_ballots(self):
        state = ElectionState(scope="current", ballots={"v": "a"})

        state.start("Week 1", now=10.0, round_id="r_10000")

        assert state.phase is ElectionPhase.ACTIVE
        assert state.ballots == {}
        assert state.round_label == "Week 1"
        assert state.round_id == "r_10000"

    def test_reset_returns_to_idle(self):
        state = ElectionState(scope="current")
        state.start("Week 1", now=10.0, round_id="r_10000")
        state.ballots["v"] = "a"

        state.reset()

        assert state.phase is ElectionPhase.IDLE
        assert state.ballots == {}
        assert state.round_id is None

    def test_missing_document_is_idle(self):
        assert ElectionState.from_document("current", None).phase is ElectionPhase.IDLE


@pytest.mark.unit
@pytest.mark.domain
class TestMatchRecord:
    def _match(self, home_score=2, away_score=1, events=None):
        return MatchRecord(
            id="m1",
            recorded_by="u1",
            home=MatchSide("home-team", ["a", "b"]),
            away=MatchSide("away-team", ["c", "d"]),
            home_score=home_score,
            away_score=away_score,
            duration_seconds=600,
            played_at=1.0,
            events=events or [],
        )

    def test_winner(self):
        assert self._match(2, 1).winner is Side.HOME
        assert self._match(0, 3).winner is Side.AWAY
        assert self._match(1, 1).winner is None

    def test_more_goal_events_than_goals_rejected(self):
        events = [GoalEvent(Side.AWAY, "c", 5), GoalEvent(Side.AWAY, "d", 9)]

        with pytest.raises(DomainValidationError):
            self._match(2, 1, events).validate()

    def test_negative_score_rejected(self):
        with pytest.raises(DomainValidationError):
            self._match(-1, 0).validate()

    def test_document_round_trip(self):
        match = self._match(events=[GoalEvent(Side.HOME, "a", 3, assist_id="b")])

        assert MatchRecord.from_document(match.to_document()) == match
