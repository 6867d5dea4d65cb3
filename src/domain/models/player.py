"""
Catalog entry domain model ("Player").

Purpose
-------
Describe a rateable catalog entity: its position, the role-specific stat
block that position implies, its overall rating, card type, community votes
and accumulated match statistics.

Responsibilities
----------------
- Model the role discriminant as a tagged union: `GoalkeeperStats` and
  `OutfieldStats` each carry a fixed attribute schema.
- Compute automatic overall ratings from per-position weights.
- Validate ratings and stats (1-99).
- Convert to/from the stored document shape (camelCase keys).

Usage Example
-------------
>>> entry = CatalogEntry.from_document(doc)
>>> entry.role
<Role.OUTFIELD: 'outfield'>
>>> entry.community_score
3
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from src.domain.models.base import (
    DomainValidationError,
    validate_not_empty,
    validate_range,
)

MIN_RATING = 1
MAX_RATING = 99

# Position codes written by the first (German-language) release of the app
LEGACY_POSITION_CODES = {
    "TW": "GK",
    "LAV": "LWB",
    "LV": "LB",
    "IV": "CB",
    "RV": "RB",
    "RAV": "RWB",
    "ZDM": "CDM",
    "ZM": "CM",
    "ZOM": "CAM",
    "LF": "LW",
    "MS": "CF",
    "RF": "RW",
}


class Position(str, Enum):
    GK = "GK"
    LWB = "LWB"
    LB = "LB"
    CB = "CB"
    RB = "RB"
    RWB = "RWB"
    CDM = "CDM"
    LM = "LM"
    CM = "CM"
    RM = "RM"
    CAM = "CAM"
    LW = "LW"
    CF = "CF"
    ST = "ST"
    RW = "RW"

    @classmethod
    def parse(cls, value: Any) -> "Position":
        code = str(value).upper()
        try:
            return cls(LEGACY_POSITION_CODES.get(code, code))
        except ValueError as exc:
            raise DomainValidationError(f"Unknown position: {value!r}", field="position") from exc


class Role(str, Enum):
    GOALKEEPER = "goalkeeper"
    OUTFIELD = "outfield"


class CardType(str, Enum):
    GOLD = "gold"
    ICON = "icon"
    INFORM = "inform"


class RatingMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


def role_for_position(position: Position) -> Role:
    return Role.GOALKEEPER if position is Position.GK else Role.OUTFIELD


# ============================================================================
# STAT BLOCKS (tagged union on Role)
# ============================================================================


class _StatBlock:
    ROLE: ClassVar[Role]

    @classmethod
    def attributes(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))  # type: ignore[arg-type]

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]):
        data = data or {}
        values = {}
        for name in cls.attributes():
            raw = data.get(name, 50)
            values[name] = int(raw) if isinstance(raw, (int, float)) and not isinstance(raw, bool) else raw
        return cls(**values)  # type: ignore[call-arg]

    def as_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in self.attributes()}

    def validate(self) -> None:
        for name, value in self.as_dict().items():
            validate_range(value, MIN_RATING, MAX_RATING, f"stats.{name}")


@dataclass(frozen=True)
class GoalkeeperStats(_StatBlock):
    ROLE: ClassVar[Role] = Role.GOALKEEPER

    DIV: int = 50
    HAN: int = 50
    KIC: int = 50
    REF: int = 50
    SPE: int = 50
    POS: int = 50


@dataclass(frozen=True)
class OutfieldStats(_StatBlock):
    ROLE: ClassVar[Role] = Role.OUTFIELD

    PAC: int = 50
    SHO: int = 50
    PAS: int = 50
    DRI: int = 50
    DEF: int = 50
    PHY: int = 50


StatBlock = Union[GoalkeeperStats, OutfieldStats]

STAT_SCHEMAS: Dict[Role, type] = {
    Role.GOALKEEPER: GoalkeeperStats,
    Role.OUTFIELD: OutfieldStats,
}


def stats_for_role(role: Role, data: Optional[Mapping[str, Any]]) -> StatBlock:
    return STAT_SCHEMAS[role].from_mapping(data)


def attributes_for_role(role: Role) -> Tuple[str, ...]:
    return STAT_SCHEMAS[role].attributes()


# ============================================================================
# OVERALL RATING
# ============================================================================

_FULLBACK = {"DEF": 0.35, "PAC": 0.25, "DRI": 0.15, "PAS": 0.15, "PHY": 0.10, "SHO": 0.0}
_WINGBACK = {"PAC": 0.25, "DRI": 0.20, "DEF": 0.25, "PAS": 0.20, "PHY": 0.05, "SHO": 0.05}
_WIDE_MID = {"DRI": 0.35, "PAC": 0.25, "PAS": 0.25, "SHO": 0.10, "PHY": 0.05, "DEF": 0.0}
_WINGER = {"DRI": 0.35, "PAC": 0.25, "SHO": 0.25, "PAS": 0.10, "PHY": 0.05, "DEF": 0.0}

POSITION_WEIGHTS: Dict[Position, Dict[str, float]] = {
    Position.GK: {"REF": 0.28, "DIV": 0.26, "POS": 0.24, "HAN": 0.15, "KIC": 0.07, "SPE": 0.0},
    Position.CB: {"DEF": 0.45, "PHY": 0.35, "PAC": 0.10, "PAS": 0.05, "DRI": 0.05, "SHO": 0.0},
    Position.LB: _FULLBACK,
    Position.RB: _FULLBACK,
    Position.LWB: _WINGBACK,
    Position.RWB: _WINGBACK,
    Position.CDM: {"DEF": 0.40, "PAS": 0.25, "PHY": 0.25, "DRI": 0.05, "PAC": 0.05, "SHO": 0.0},
    Position.CM: {"PAS": 0.35, "DRI": 0.30, "SHO": 0.10, "DEF": 0.10, "PHY": 0.10, "PAC": 0.05},
    Position.CAM: {"PAS": 0.30, "DRI": 0.30, "SHO": 0.20, "PAC": 0.10, "PHY": 0.10, "DEF": 0.0},
    Position.LM: _WIDE_MID,
    Position.RM: _WIDE_MID,
    Position.LW: _WINGER,
    Position.RW: _WINGER,
    Position.CF: {"SHO": 0.30, "DRI": 0.30, "PAS": 0.20, "PAC": 0.15, "PHY": 0.05, "DEF": 0.0},
    Position.ST: {"SHO": 0.55, "PHY": 0.20, "DRI": 0.15, "PAC": 0.15, "PAS": 0.05, "DEF": 0.0},
}


def calculate_overall(position: Position, stats: StatBlock) -> int:
    """
    Weighted average of the stat block for a position, rounded half up.

    Positions without weights fall back to a plain average.
    """
    values = stats.as_dict()
    weights = POSITION_WEIGHTS.get(position)
    if not weights:
        return int(sum(values.values()) / len(values) + 0.5)

    total_weight = sum(weights.values())
    weighted = sum(values.get(name, 0) * weight for name, weight in weights.items())
    return int(weighted / total_weight + 0.5)


# ============================================================================
# VOTES & MATCH STATS
# ============================================================================


@dataclass
class VoteBucket:
    """Per-attribute tally: `score` caches up-votes minus down-votes."""

    score: int = 0
    voter_choices: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_document(cls, data: Optional[Mapping[str, Any]]) -> "VoteBucket":
        data = data or {}
        return cls(
            score=int(data.get("score", 0)),
            voter_choices=dict(data.get("voterChoices") or {}),
        )

    def to_document(self) -> Dict[str, Any]:
        return {"score": self.score, "voterChoices": dict(self.voter_choices)}


@dataclass
class PlayStats:
    played: int = 0
    won: int = 0
    goals: int = 0
    assists: int = 0
    clean_sheets: int = 0

    @classmethod
    def from_document(cls, data: Optional[Mapping[str, Any]]) -> "PlayStats":
        data = data or {}
        return cls(
            played=int(data.get("played", 0)),
            won=int(data.get("won", 0)),
            goals=int(data.get("goals", 0)),
            assists=int(data.get("assists", 0)),
            clean_sheets=int(data.get("cleanSheets", 0)),
        )

    def to_document(self) -> Dict[str, int]:
        return {
            "played": self.played,
            "won": self.won,
            "goals": self.goals,
            "assists": self.assists,
            "cleanSheets": self.clean_sheets,
        }


# ============================================================================
# CATALOG ENTRY
# ============================================================================


@dataclass
class CatalogEntry:
    """
    A catalog template.

    `stats` is always the block matching `role_for_position(position)`.
    """

    id: str
    name: str
    position: Position
    rating: int
    stats: StatBlock
    card_type: CardType = CardType.GOLD
    rating_mode: RatingMode = RatingMode.AUTO
    image_url: str = ""
    nation: Optional[str] = None
    club: Optional[str] = None
    votes: Dict[str, VoteBucket] = field(default_factory=dict)
    game_stats: PlayStats = field(default_factory=PlayStats)

    @property
    def role(self) -> Role:
        return role_for_position(self.position)

    @property
    def community_score(self) -> int:
        """Sum of every attribute's vote score."""
        return sum(bucket.score for bucket in self.votes.values())

    def apply_rating_mode(self) -> None:
        """Recompute `rating` from stats when the entry is in auto mode."""
        if self.rating_mode is RatingMode.AUTO:
            self.rating = calculate_overall(self.position, self.stats)

    def validate(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.name, "name")
        validate_range(self.rating, MIN_RATING, MAX_RATING, "rating")
        if self.stats.ROLE is not self.role:
            raise DomainValidationError(
                f"{self.position.value} requires {self.role.value} stats", field="stats"
            )
        self.stats.validate()

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "CatalogEntry":
        position = Position.parse(data.get("position", Position.ST.value))
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            position=position,
            rating=int(data.get("rating", MIN_RATING)),
            stats=stats_for_role(role_for_position(position), data.get("stats")),
            card_type=CardType(data.get("cardType", CardType.GOLD.value)),
            rating_mode=RatingMode(data.get("ratingMode", RatingMode.AUTO.value)),
            image_url=str(data.get("imageUrl", "")),
            nation=data.get("nation"),
            club=data.get("club"),
            votes={
                attribute: VoteBucket.from_document(bucket)
                for attribute, bucket in (data.get("votes") or {}).items()
            },
            game_stats=PlayStats.from_document(data.get("gameStats")),
        )

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "position": self.position.value,
            "rating": self.rating,
            "stats": self.stats.as_dict(),
            "cardType": self.card_type.value,
            "ratingMode": self.rating_mode.value,
            "imageUrl": self.image_url,
            "votes": {name: bucket.to_document() for name, bucket in self.votes.items()},
            "gameStats": self.game_stats.to_document(),
        }
        if self.nation is not None:
            document["nation"] = self.nation
        if self.club is not None:
            document["club"] = self.club
        return document
