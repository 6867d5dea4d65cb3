"""
Match result models.

A match is a finished 5v5 game between two sides. Each side lists the
entity ids that took part (catalog entries or owned instances).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from src.domain.models.base import DomainValidationError


class Side(str, Enum):
    HOME = "home"
    AWAY = "away"


@dataclass(frozen=True)
class GoalEvent:
    side: Side
    scorer_id: str
    minute: int
    assist_id: Optional[str] = None

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "GoalEvent":
        return cls(
            side=Side(data["side"]),
            scorer_id=str(data["scorerId"]),
            minute=int(data.get("minute", 0)),
            assist_id=data.get("assistId"),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "type": "goal",
            "side": self.side.value,
            "scorerId": self.scorer_id,
            "minute": self.minute,
            "assistId": self.assist_id,
        }


@dataclass
class MatchSide:
    team_id: str
    entity_ids: List[str] = field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        return {"teamId": self.team_id, "entityIds": list(self.entity_ids)}

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "MatchSide":
        return cls(team_id=str(data.get("teamId", "")), entity_ids=list(data.get("entityIds") or []))


@dataclass
class MatchRecord:
    id: str
    recorded_by: str
    home: MatchSide
    away: MatchSide
    home_score: int
    away_score: int
    duration_seconds: int
    played_at: float
    events: List[GoalEvent] = field(default_factory=list)

    @property
    def winner(self) -> Optional[Side]:
        if self.home_score > self.away_score:
            return Side.HOME
        if self.away_score > self.home_score:
            return Side.AWAY
        return None

    def side(self, side: Side) -> MatchSide:
        return self.home if side is Side.HOME else self.away

    def goals_for(self, side: Side) -> int:
        return self.home_score if side is Side.HOME else self.away_score

    def goals_against(self, side: Side) -> int:
        return self.away_score if side is Side.HOME else self.home_score

    def validate(self) -> None:
        if self.home_score < 0 or self.away_score < 0:
            raise DomainValidationError("Scores must be non-negative", field="score")
        if self.duration_seconds < 0:
            raise DomainValidationError("Duration must be non-negative", field="duration_seconds")
        for side in Side:
            scored = sum(1 for event in self.events if event.side is side)
            if scored > self.goals_for(side):
                raise DomainValidationError(
                    f"{side.value} has more goal events than goals", field="events"
                )

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "MatchRecord":
        return cls(
            id=str(data["id"]),
            recorded_by=str(data.get("recordedBy", "")),
            home=MatchSide.from_document(data.get("home") or {}),
            away=MatchSide.from_document(data.get("away") or {}),
            home_score=int(data.get("homeScore", 0)),
            away_score=int(data.get("awayScore", 0)),
            duration_seconds=int(data.get("duration", 0)),
            played_at=float(data.get("date", 0.0)),
            events=[GoalEvent.from_document(e) for e in data.get("events") or []],
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "recordedBy": self.recorded_by,
            "home": self.home.to_document(),
            "away": self.away.to_document(),
            "homeScore": self.home_score,
            "awayScore": self.away_score,
            "duration": self.duration_seconds,
            "date": self.played_at,
            "events": [event.to_document() for event in self.events],
        }
