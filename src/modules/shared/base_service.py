"""
Base Service Foundation

Purpose
-------
Foundation class for every domain service in Ultimate Manager. Services
implement the game rules, talk to the DocumentStore, and emit domain events.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access
- Event emission helpers
- Common validation helpers raising domain `ValidationError`

What this class does NOT do:
- Own the document store (subclasses receive it explicitly)
- Resolve the acting user (callers pass `user_id` to every operation)

Usage
-----
    class LedgerService(BaseService):
        def __init__(self, store, config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)
            self._store = store
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from src.core.exceptions import ConfigurationError, ErrorSeverity
from src.modules.shared.exceptions import (
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

if TYPE_CHECKING:
    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus


_SEVERITY_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Game configuration access (the ConfigManager class)
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: logging.Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and the key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        """Log `error` at a level derived from its severity; alerting errors carry a traceback."""
        severity = get_error_severity(error)
        self.log.log(
            _SEVERITY_LEVELS[severity],
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "severity": severity.value,
                "retryable": is_transient_error(error),
                **context,
            },
            exc_info=error if should_alert(error) else None,
        )

    def validate_identifier(self, value: Any, name: str) -> str:
        """Require a non-empty string id."""
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, f"{name} must be a non-empty string")
        return value

    def validate_number(self, value: Any, name: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(name, f"{name} must be a number, got {type(value).__name__}")
        return value

    def validate_non_negative_int(self, value: Any, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(name, f"{name} must be a non-negative integer, got {value}")
        return value
