"""
Core infrastructure layer for Ultimate Manager.

Subsystems
----------
- config: static environment configuration and game balance configuration
- logging: structured, queue-backed logging with context propagation
- event: async EventBus with tiered listener execution
- store: DocumentStore port with in-memory and Redis adapters
- services: service container wiring everything together

This package only re-exports the leaf primitives; import the store, the
event bus and the container from their own subpackages.
"""

from __future__ import annotations

from src.core.config import Config
from src.core.exceptions import (
    ClubInfrastructureException,
    ConfigurationError,
    ErrorSeverity,
    EventBusError,
    StorageUnavailableError,
)
from src.core.logging import get_logger, setup_logging

__all__ = [
    "Config",
    "setup_logging",
    "get_logger",
    "ClubInfrastructureException",
    "ConfigurationError",
    "StorageUnavailableError",
    "EventBusError",
    "ErrorSeverity",
]
