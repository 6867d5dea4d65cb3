"""
Infrastructure exceptions for Ultimate Manager.

Purpose
-------
Structured exception hierarchy for technical failures: storage outages,
configuration problems and event bus faults. Game-rule violations live in
`src.modules.shared.exceptions` instead.

Design Notes
------------
- All infrastructure exceptions inherit from `ClubInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: structured context (dict)
  - `severity`: `ErrorSeverity` for logging/alerting
  - `is_retryable`: whether the operation may be retried
  - `error_code`: short, stable identifier
- The handling predicates (`is_transient_error`, `get_error_severity`,
  `should_alert`) live in `src.modules.shared.exceptions` and cover both
  hierarchies.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"  # Normal operation (e.g. rule violations)
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ClubInfrastructureException(Exception):
    """
    Base exception for infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
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
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(ClubInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class StorageUnavailableError(ClubInfrastructureException):
    """
    Raised when the document store cannot be reached or a call times out.

    Callers may retry; a failed write leaves the stored document unchanged.

    Args:
        operation: Description of the store operation that failed
        original_error: The underlying exception
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Document store unavailable during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="STORAGE_UNAVAILABLE",
        )


class EventBusError(ClubInfrastructureException):
    """
    Raised when the event bus refuses an operation, e.g. a listener whose
    callback cannot take the payload or an empty event name.

    Args:
        operation: The bus operation that failed (`subscribe`, ...)
        event_type: Event name or pattern involved
        original_error: The underlying exception
    """

    def __init__(
        self, operation: str, event_type: str, original_error: Exception
    ) -> None:
        self.operation = operation
        self.event_type = event_type
        self.original_error = original_error
        super().__init__(
            f"Event bus error during {operation} for event '{event_type}': {original_error}",
            details={
                "operation": operation,
                "event_type": event_type,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="EVENT_BUS_ERROR",
        )

