"""Exceptions raised by the slug workflow."""

from __future__ import annotations


class SlugError(Exception):
    """Base exception for slug workflow."""


class InvalidSlugError(SlugError):
    """Raised when value does not satisfy format/rules."""

    def __init__(self, message: str, *, reserved: bool = False, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.reserved = reserved
        self.errors = list(errors or [])


class SlugUnavailableError(SlugError):
    """Raised when slug is actively held by another owner (or the owner changed concurrently)."""


class OwnerNotFoundError(SlugError):
    """Raised when the owner record or its active assignment does not exist."""


class StoreUnavailableError(Exception):
    """The backing store failed; transient, safe to retry with backoff."""
