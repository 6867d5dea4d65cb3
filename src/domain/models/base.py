"""
Base helpers for Ultimate Manager domain models.

Purpose
-------
Shared validation primitives for the dataclass models in this package.
Models stay free of persistence concerns; services convert them to and
from store documents through `to_document()` / `from_document()`.

Non-Responsibilities
--------------------
- Persistence (handled by services through the DocumentStore)
- Translating validation failures into domain exceptions (services do that)
"""

from __future__ import annotations

from typing import Any, Optional


class DomainValidationError(Exception):
    """
    Raised when a domain model violates one of its invariants.

    Parameters
    ----------
    message : str
        Human-readable error message
    field : Optional[str]
        Field name that failed validation (if applicable)
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def validate_range(value: Any, min_val: int, max_val: int, field_name: str) -> None:
    """
    Validate that an integer lies within [min_val, max_val].

    Raises
    ------
    DomainValidationError
        If value is not an integer or lies outside the range
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise DomainValidationError(
            f"{field_name} must be an integer, got {type(value).__name__}",
            field=field_name,
        )
    if not (min_val <= value <= max_val):
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}",
            field=field_name,
        )


def validate_not_empty(value: Optional[str], field_name: str) -> None:
    if not value or not value.strip():
        raise DomainValidationError(f"{field_name} cannot be empty", field=field_name)
