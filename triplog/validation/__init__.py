"""Validation package."""

from triplog.validation.validator import (
    EmptyNameError,
    TripValidator,
    ValidationError,
    get_user_friendly_summary,
)

__all__ = [
    "EmptyNameError",
    "TripValidator",
    "ValidationError",
    "get_user_friendly_summary",
]
