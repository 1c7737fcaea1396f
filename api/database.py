"""
Book persistence on PostgreSQL through an asyncpg connection pool.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union
from uuid import UUID, uuid4

import asyncpg
import structlog
from pydantic import ValidationError

from api.errors import BookNotFoundError, MalformedInputError, StoreUnavailableError
from api.models import Book

logger = structlog.get_logger(__name__)

# Failures of the backend itself, as opposed to a missing row
STORE_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)

BOOK_COLUMNS = "id, title, author, year, created_at, updated_at"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS books (
    id UUID PRIMARY KEY,
    title TEXT NOT NULL CHECK (title <> ''),
    author TEXT NOT NULL CHECK (author <> ''),
    year INTEGER NOT NULL CHECK (year BETWEEN 1000 AND 2034),
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_books_created_at ON books (created_at DESC);
"""


def parse_book_id(book_id: Union[str, UUID]) -> UUID:
    """
    Parse a book identifier.

    Raises:
        MalformedInputError: If the value is not a UUID
    """
    if isinstance(book_id, UUID):
        return book_id
    try:
        return UUID(book_id)
    except (ValueError, TypeError, AttributeError) as e:
        raise MalformedInputError("Invalid book ID", {"book_id": str(book_id)}) from e


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def create_pool(
    database_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 10.0,
) -> asyncpg.Pool:
    """
    Create the connection pool shared by all requests.

    Args:
        database_url: PostgreSQL DSN
        min_size: Connections opened eagerly
        max_size: Upper bound on open connections
        command_timeout: Per-statement timeout in seconds

    Returns:
        asyncpg.Pool ready for use
    """
    logger.info("Creating database connection pool", min_size=min_size, max_size=max_size)
    pool = await asyncpg.create_pool(
        database_url,
        min_size=min_size,
        max_size=max_size,
        command_timeout=command_timeout,
    )
    logger.info("Database connection pool created")
    return pool


class BookStore:
    """
    CRUD operations for books.

    Every operation is a single statement on a connection borrowed from the
    pool, so one store instance can serve concurrent requests.
    """

    def __init__(self, pool: asyncpg.Pool, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the store.

        Args:
            pool: asyncpg connection pool
            clock: Source of timestamps, UTC now by default
        """
        self._pool = pool
        self._clock = clock or utcnow

    async def ensure_schema(self) -> None:
        """Create the books table and its index if they are missing."""
        try:
            async with self._pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
        except STORE_ERRORS as e:
            logger.error("Failed to create schema", error=str(e))
            raise StoreUnavailableError("ensure_schema", str(e)) from e
        logger.info("Database schema ready")

    async def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        try:
            async with self._pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except STORE_ERRORS as e:
            logger.warning("Database ping failed", error=str(e))
            return False

    async def list_books(self) -> List[Book]:
        """
        Get all books, most recently created first.

        Rows that cannot be read as a Book are logged and left out.

        Returns:
            List of books, empty when the table is empty
        """
        query = f"SELECT {BOOK_COLUMNS} FROM books ORDER BY created_at DESC"
        try:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query)
        except STORE_ERRORS as e:
            logger.error("Failed to query books", operation="list", error=str(e))
            raise StoreUnavailableError("list", str(e)) from e

        books = []
        for row in rows:
            try:
                books.append(Book(**dict(row)))
            except (ValidationError, TypeError) as e:
                logger.error("Failed to read book row", operation="list", error=str(e))
                continue
        return books

    async def get_book(self, book_id: Union[str, UUID]) -> Book:
        """
        Get a single book.

        Raises:
            MalformedInputError: If book_id is not a UUID
            BookNotFoundError: If no book has this id
            StoreUnavailableError: On database failure
        """
        book_uuid = parse_book_id(book_id)
        query = f"SELECT {BOOK_COLUMNS} FROM books WHERE id = $1"
        row = await self._fetchrow("get", book_uuid, query, book_uuid)
        return self._to_book("get", book_uuid, row)

    async def create_book(self, title: str, author: str, year: int) -> Book:
        """
        Insert a new book with a fresh id and matching timestamps.

        Args:
            title: Book title
            author: Book author
            year: Publication year

        Returns:
            The stored book including generated fields
        """
        book_uuid = uuid4()
        now = self._clock()
        query = (
            "INSERT INTO books (id, title, author, year, created_at, updated_at) "
            f"VALUES ($1, $2, $3, $4, $5, $6) RETURNING {BOOK_COLUMNS}"
        )
        row = await self._fetchrow("create", book_uuid, query, book_uuid, title, author, year, now, now)
        book = self._to_book("create", book_uuid, row)
        logger.info("Book created", book_id=str(book.id))
        return book

    async def update_book(self, book_id: Union[str, UUID], title: str, author: str, year: int) -> Book:
        """
        Replace title, author and year of an existing book.

        created_at is left untouched; updated_at is set to now.

        Raises:
            MalformedInputError: If book_id is not a UUID
            BookNotFoundError: If no book has this id
            StoreUnavailableError: On database failure
        """
        book_uuid = parse_book_id(book_id)
        query = (
            "UPDATE books SET title = $1, author = $2, year = $3, updated_at = $4 "
            f"WHERE id = $5 RETURNING {BOOK_COLUMNS}"
        )
        row = await self._fetchrow("update", book_uuid, query, title, author, year, self._clock(), book_uuid)
        book = self._to_book("update", book_uuid, row)
        logger.info("Book updated", book_id=str(book.id))
        return book

    async def delete_book(self, book_id: Union[str, UUID]) -> None:
        """
        Delete a book.

        Raises:
            MalformedInputError: If book_id is not a UUID
            BookNotFoundError: If no book has this id
            StoreUnavailableError: On database failure
        """
        book_uuid = parse_book_id(book_id)
        try:
            async with self._pool.acquire() as conn:
                deleted = await conn.fetchval("DELETE FROM books WHERE id = $1 RETURNING id", book_uuid)
        except STORE_ERRORS as e:
            logger.error("Failed to delete book", operation="delete", book_id=str(book_uuid), error=str(e))
            raise StoreUnavailableError("delete", str(e)) from e

        if deleted is None:
            raise BookNotFoundError(str(book_uuid))
        logger.info("Book deleted", book_id=str(book_uuid))

    async def _fetchrow(self, operation: str, book_uuid: UUID, query: str, *args):
        try:
            async with self._pool.acquire() as conn:
                return await conn.fetchrow(query, *args)
        except STORE_ERRORS as e:
            logger.error(f"Failed to {operation} book", operation=operation, book_id=str(book_uuid), error=str(e))
            raise StoreUnavailableError(operation, str(e)) from e

    @staticmethod
    def _to_book(operation: str, book_uuid: UUID, row) -> Book:
        if row is None:
            raise BookNotFoundError(str(book_uuid))
        try:
            return Book(**dict(row))
        except (ValidationError, TypeError) as e:
            logger.error("Failed to read book row", operation=operation, book_id=str(book_uuid), error=str(e))
            raise StoreUnavailableError(operation, str(e)) from e
