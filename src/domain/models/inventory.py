"""
Owned instance domain model ("Inventory Item").

An owned instance is a snapshot copy of a catalog template assigned to one
user. It has its own id (never equal to a catalog id), a zeroed play-stat
block and an empty vote map at creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from src.domain.models.player import (
    CardType,
    CatalogEntry,
    PlayStats,
    Position,
    StatBlock,
    VoteBucket,
    role_for_position,
    stats_for_role,
)


@dataclass
class OwnedInstance:
    id: str
    owner_id: str
    template_id: str
    name: str
    position: Position
    rating: int
    stats: StatBlock
    card_type: CardType = CardType.GOLD
    image_url: str = ""
    acquired_at: float = 0.0
    game_stats: PlayStats = field(default_factory=PlayStats)
    votes: Dict[str, VoteBucket] = field(default_factory=dict)

    @classmethod
    def from_template(
        cls,
        template: CatalogEntry,
        instance_id: str,
        owner_id: str,
        acquired_at: float,
    ) -> "OwnedInstance":
        """Snapshot a template's display and stat fields into a fresh instance."""
        if instance_id == template.id:
            raise ValueError("Instance id must differ from its template id")
        return cls(
            id=instance_id,
            owner_id=owner_id,
            template_id=template.id,
            name=template.name,
            position=template.position,
            rating=template.rating,
            stats=template.stats,
            card_type=template.card_type,
            image_url=template.image_url,
            acquired_at=acquired_at,
        )

    @classmethod
    def from_document(cls, data: Mapping[str, Any], owner_id: Optional[str] = None) -> "OwnedInstance":
        position = Position.parse(data.get("position", Position.ST.value))
        return cls(
            id=str(data["id"]),
            owner_id=str(data.get("ownerId", owner_id or "")),
            template_id=str(data.get("templateId", "")),
            name=str(data.get("name", "")),
            position=position,
            rating=int(data.get("rating", 1)),
            stats=stats_for_role(role_for_position(position), data.get("stats")),
            card_type=CardType(data.get("cardType", CardType.GOLD.value)),
            image_url=str(data.get("imageUrl", "")),
            acquired_at=float(data.get("acquiredAt", 0.0)),
            game_stats=PlayStats.from_document(data.get("gameStats")),
            votes={
                attribute: VoteBucket.from_document(bucket)
                for attribute, bucket in (data.get("votes") or {}).items()
            },
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "templateId": self.template_id,
            "name": self.name,
            "position": self.position.value,
            "rating": self.rating,
            "stats": self.stats.as_dict(),
            "cardType": self.card_type.value,
            "imageUrl": self.image_url,
            "acquiredAt": self.acquired_at,
            "gameStats": self.game_stats.to_document(),
            "votes": {name: bucket.to_document() for name, bucket in self.votes.items()},
        }
