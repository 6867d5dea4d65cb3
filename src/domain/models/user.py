"""
User profile / ledger record.

`currency` is only ever changed through signed increments; this model is a
read view of the stored record and never written back wholesale.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass
class UserProfile:
    id: str
    display_name: str = ""
    role: UserRole = UserRole.USER
    currency: float = 0
    last_bonus_claim_at: float = 0.0
    linked_entity_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    @classmethod
    def from_document(cls, user_id: str, data: Optional[Mapping[str, Any]]) -> "UserProfile":
        data = data or {}
        try:
            role = UserRole(data.get("role", UserRole.USER.value))
        except ValueError:
            role = UserRole.USER
        return cls(
            id=user_id,
            display_name=str(data.get("displayName", "")),
            role=role,
            currency=data.get("currency", 0) or 0,
            last_bonus_claim_at=float(data.get("lastBonusClaimAt", 0) or 0),
            linked_entity_id=data.get("linkedEntityId") or None,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "displayName": self.display_name,
            "role": self.role.value,
            "currency": self.currency,
            "lastBonusClaimAt": self.last_bonus_claim_at,
            "linkedEntityId": self.linked_entity_id,
        }
