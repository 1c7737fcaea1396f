"""
Domain errors for the Book Library API.

These exceptions describe what went wrong independently of HTTP; the
mapping to status codes lives in ``status_for`` only.
"""

from typing import Optional

from fastapi import status


class BookServiceError(Exception):
    """Base exception for all book service errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class MalformedInputError(BookServiceError):
    """Raised for undecodable bodies, unparseable URLs and bad identifiers."""


class InvalidFieldError(BookServiceError):
    """Raised when a book payload fails validation."""

    def __init__(self, field: str, reason: Optional[str] = None):
        self.field = field
        message = f"Invalid {field}"
        if reason:
            message += f": {reason}"
        super().__init__(message=message, details={"field": field})


class BookNotFoundError(BookServiceError):
    """Raised when no book matches the requested identifier."""

    def __init__(self, book_id: str):
        self.book_id = book_id
        super().__init__(message="Book not found", details={"book_id": book_id})


class StoreUnavailableError(BookServiceError):
    """Raised when the persistence backend fails for a reason other than a missing row."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        self.operation = operation
        # reason is kept for logs only, never sent to clients
        super().__init__(
            message="Internal server error",
            details={"operation": operation, "reason": reason},
        )


_STATUS_BY_ERROR = (
    (MalformedInputError, status.HTTP_400_BAD_REQUEST),
    (InvalidFieldError, status.HTTP_400_BAD_REQUEST),
    (BookNotFoundError, status.HTTP_404_NOT_FOUND),
    (StoreUnavailableError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def status_for(exc: Exception) -> int:
    """Translate an error into the HTTP status code returned to the client."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
