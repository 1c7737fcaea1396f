"""
Validation rules for book create/update payloads.
"""

from api.errors import InvalidFieldError
from api.models import BookRequest

MIN_YEAR = 1000
MAX_YEAR = 2034


def validate_book_request(candidate: BookRequest) -> None:
    """
    Check a book payload before it reaches the store.

    Args:
        candidate: Decoded create or update request

    Raises:
        InvalidFieldError: naming the first field that fails, checked in
            the order title, author, year
    """
    if candidate.title == "":
        raise InvalidFieldError("title", "must not be empty")
    if candidate.author == "":
        raise InvalidFieldError("author", "must not be empty")
    if candidate.year < MIN_YEAR or candidate.year > MAX_YEAR:
        raise InvalidFieldError("year", f"must be between {MIN_YEAR} and {MAX_YEAR}")
