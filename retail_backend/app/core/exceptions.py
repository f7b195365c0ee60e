"""
Domain exceptions.

Services raise these; the API layer turns them into JSON errors using
status_code and code. None of them are retried by the service that raises
them. Only ConcurrentModification is flagged retryable for the caller.
"""
from __future__ import annotations


class RetailError(Exception):
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> str:
        return type(self).__name__


class InvalidQuantity(RetailError):
    """Non-positive quantity where a positive one is required, or a negative counter."""

    status_code = 400


class InsufficientStock(RetailError):
    status_code = 409


class OverRelease(RetailError):
    status_code = 409


class DuplicateStock(RetailError):
    status_code = 409


class NotFound(RetailError):
    status_code = 404


class ConcurrentModification(RetailError):
    """Stale row version detected on write. Safe to retry from fresh state."""

    status_code = 409
    retryable = True


class InvalidState(RetailError):
    status_code = 400
