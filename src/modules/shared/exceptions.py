"""
Domain exceptions for Ultimate Manager.

Purpose
-------
Exceptions raised by services for rule violations and missing resources:
a vote with an unknown direction, a ballot for an unknown entity, an admin
action by a regular user, a ballot while no round is open.

Design Notes
------------
- All domain exceptions inherit from `ClubDomainException` and carry the same
  structured metadata as infrastructure errors (`message`, `details`,
  `severity`, `is_retryable`, `error_code`, `to_dict()`).
- Insufficient balance for a pack is not an exception; `open_pack` returns
  `None` instead.
- Helper predicates understand both hierarchies, so callers can route any
  exception through `is_transient_error` / `should_alert`.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from src.core.exceptions import ClubInfrastructureException, ErrorSeverity


class ClubDomainException(Exception):
    """
    Base exception for domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.INFO
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}"
            ")"
        )


class NotFoundError(ClubDomainException):
    """
    Raised when an operation references an id absent from its collection.

    Args:
        resource_type: Collection or resource name (e.g. "players", "Inventory card")
        identifier: Optional identifier of the missing resource
    """

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code="NOT_FOUND",
        )


class ValidationError(ClubDomainException):
    """
    Raised when input fails domain validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidDirectionError(ValidationError):
    """Raised when a stat vote direction is neither "up" nor "down"."""

    def __init__(self, direction: Any) -> None:
        self.direction = direction
        super().__init__("direction", f"expected 'up' or 'down', got {direction!r}")
        self.error_code = "INVALID_DIRECTION"


class InvalidBallotTargetError(ClubDomainException):
    """
    Raised when a ballot names an entity that is neither in the catalog nor
    linked to any profile.
    """

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(
            f"Ballot target is not an eligible entity: {entity_id}",
            details={"entity_id": entity_id},
            error_code="INVALID_BALLOT_TARGET",
        )


class NotAuthorizedError(ClubDomainException):
    """
    Raised when the acting user lacks the role an operation requires.

    Args:
        user_id: The acting user
        action: The attempted operation
        required_role: Role the operation requires, if any
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(
        self, user_id: str, action: str, required_role: Optional[str] = None
    ) -> None:
        self.user_id = user_id
        self.action = action
        self.required_role = required_role
        reason = f" (requires {required_role})" if required_role else ""
        super().__init__(
            f"User {user_id} is not allowed to {action}{reason}",
            details={"user_id": user_id, "action": action, "required_role": required_role},
            error_code="NOT_AUTHORIZED",
        )


class InvalidOperationError(ClubDomainException):
    """
    Raised when an action is not allowed in the current state.

    Example:
        >>> raise InvalidOperationError("cast_ballot", "no election round is active")
    """

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )


def is_transient_error(exc: Exception) -> bool:
    """True if the exception (domain or infrastructure) is marked retryable."""
    if isinstance(exc, (ClubDomainException, ClubInfrastructureException)):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    if isinstance(exc, (ClubDomainException, ClubInfrastructureException)):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
