"""
Shared Module

Domain-level foundations for every game module:
- Domain exceptions and error helpers
- Base service and repository patterns

Usage
-----
    from src.modules.shared import BaseService, BaseRepository, NotFoundError
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .exceptions import (
    ClubDomainException,
    InvalidBallotTargetError,
    InvalidDirectionError,
    InvalidOperationError,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

__all__ = [
    "BaseService",
    "BaseRepository",
    "ClubDomainException",
    "InvalidDirectionError",
    "InvalidBallotTargetError",
    "NotAuthorizedError",
    "NotFoundError",
    "ValidationError",
    "InvalidOperationError",
    "is_transient_error",
    "get_error_severity",
    "should_alert",
]
