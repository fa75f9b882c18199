"""Custom exceptions for the coach_memory package."""

from __future__ import annotations


class CoachMemoryError(Exception):
    """Base exception for all coach_memory errors."""


class MalformedRecordError(CoachMemoryError):
    """Raised when a stored hash cannot be decoded into a record."""

    def __init__(self, key: str, errors: list[str]) -> None:
        self.key = key
        self.errors = errors
        super().__init__(f"Malformed record at {key!r}: {'; '.join(errors)}")


class InvalidRoleError(CoachMemoryError, ValueError):
    """Raised when a Message is created with a role outside the allowed set."""

    def __init__(self, role: str, allowed: frozenset[str]) -> None:
        self.role = role
        super().__init__(
            f"Invalid message role {role!r}; expected one of {sorted(allowed)}"
        )


class InvalidSelectorError(CoachMemoryError, ValueError):
    """Raised when ``query`` receives a selector it does not understand."""


class UnsupportedRecallModeError(CoachMemoryError):
    """Raised when semantic recall is requested (recency recall only)."""


class FlushNotAllowedError(CoachMemoryError):
    """Raised when a whole-store flush is attempted without opting in."""
