"""
Player-of-the-Match election models.

States
------
- IDLE: `is_active` is False; stored ballots are ignored.
- ACTIVE: ballots are accepted, one per voter (latest wins).

Each started round gets a `round_id`; its history record is stored under
that id, so ending the same round twice writes one record.

`ElectionRecord` entries form the append-only history of concluded rounds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ElectionPhase(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class ElectionState:
    scope: str
    is_active: bool = False
    round_label: str = ""
    ballots: Dict[str, str] = field(default_factory=dict)
    started_at: Optional[float] = None
    round_id: Optional[str] = None

    @property
    def phase(self) -> ElectionPhase:
        return ElectionPhase.ACTIVE if self.is_active else ElectionPhase.IDLE

    def start(self, round_label: str, now: float, round_id: str) -> None:
        self.is_active = True
        self.round_id = round_id
        self.round_label = round_label
        self.ballots = {}
        self.started_at = now

    def reset(self) -> None:
        self.is_active = False
        self.ballots = {}
        self.started_at = None
        self.round_id = None

    @classmethod
    def from_document(cls, scope: str, data: Optional[Mapping[str, Any]]) -> "ElectionState":
        data = data or {}
        return cls(
            scope=scope,
            is_active=bool(data.get("isActive", False)),
            round_label=str(data.get("roundLabel", "")),
            ballots=dict(data.get("ballots") or {}),
            started_at=data.get("startedAt"),
            round_id=data.get("roundId"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "isActive": self.is_active,
            "roundLabel": self.round_label,
            "ballots": dict(self.ballots),
            "startedAt": self.started_at,
            "roundId": self.round_id,
        }


@dataclass(frozen=True)
class ElectionRecord:
    id: str
    round_label: str
    winner_entity_id: Optional[str]
    winning_vote_count: int
    concluded_at: float

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "ElectionRecord":
        return cls(
            id=str(data["id"]),
            round_label=str(data.get("roundLabel", "")),
            winner_entity_id=data.get("winnerEntityId"),
            winning_vote_count=int(data.get("winningVoteCount", 0)),
            concluded_at=float(data.get("concludedAt", 0.0)),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "roundLabel": self.round_label,
            "winnerEntityId": self.winner_entity_id,
            "winningVoteCount": self.winning_vote_count,
            "concludedAt": self.concluded_at,
        }
