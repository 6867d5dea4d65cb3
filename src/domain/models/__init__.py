"""
Domain models for Ultimate Manager.

Plain dataclasses with the game rules that belong to the data itself
(role-specific stat schemas, overall rating, election phases). Services
convert between these models and store documents.
"""

from .base import DomainValidationError, validate_not_empty, validate_range
from .election import ElectionPhase, ElectionRecord, ElectionState
from .inventory import OwnedInstance
from .match import GoalEvent, MatchRecord, MatchSide, Side
from .player import (
    POSITION_WEIGHTS,
    CardType,
    CatalogEntry,
    GoalkeeperStats,
    OutfieldStats,
    PlayStats,
    Position,
    RatingMode,
    Role,
    StatBlock,
    VoteBucket,
    attributes_for_role,
    calculate_overall,
    role_for_position,
    stats_for_role,
)
from .user import UserProfile, UserRole

__all__ = [
    "DomainValidationError",
    "validate_range",
    "validate_not_empty",
    # Catalog
    "Position",
    "Role",
    "CardType",
    "RatingMode",
    "GoalkeeperStats",
    "OutfieldStats",
    "StatBlock",
    "POSITION_WEIGHTS",
    "VoteBucket",
    "PlayStats",
    "CatalogEntry",
    "attributes_for_role",
    "calculate_overall",
    "role_for_position",
    "stats_for_role",
    # Inventory
    "OwnedInstance",
    # Users
    "UserProfile",
    "UserRole",
    # Elections
    "ElectionPhase",
    "ElectionState",
    "ElectionRecord",
    # Matches
    "Side",
    "GoalEvent",
    "MatchSide",
    "MatchRecord",
]
