"""
FastAPI main application for the Book Library API.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from api.config import APIConfig, get_config
from api.database import BookStore, create_pool
from api.errors import BookServiceError, StoreUnavailableError, status_for
from api.models import (
    Book, BookRequest, ErrorResponse,
    URLProcessRequest, URLProcessResponse
)
from api.url_processor import normalize_url
from api.validation import validate_book_request

logger = structlog.get_logger(__name__)


def error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail, status_code=status_code).model_dump()
    )


def get_book_store(request: Request) -> BookStore:
    """Dependency returning the store attached to the running application."""
    store = getattr(request.app.state, "book_store", None)
    if store is None:
        raise StoreUnavailableError("connect", "book store is not initialized")
    return store


def create_app(config: Optional[APIConfig] = None, store: Optional[BookStore] = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings, loaded from the environment when omitted
        store: Ready-made store; when given, no database pool is opened

    Returns:
        Configured FastAPI application
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Book Library API")

        if store is not None:
            yield
            return

        try:
            pool = await create_pool(
                config.database_url,
                min_size=config.db_pool_min_size,
                max_size=config.db_pool_max_size,
                command_timeout=config.db_command_timeout,
            )
        except Exception as e:
            logger.error("Failed to connect to database", database=config.safe_database_url(), error=str(e))
            raise

        try:
            app.state.book_store = BookStore(pool)
            if config.auto_create_schema:
                await app.state.book_store.ensure_schema()
            logger.info("Database connection established", database=config.safe_database_url())
            yield
        finally:
            logger.info("Shutting down Book Library API")
            app.state.book_store = None
            await pool.close()

    app = FastAPI(
        title=config.api_title,
        description=config.api_description,
        version=config.api_version,
        lifespan=lifespan
    )
    app.state.book_store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )

    # Exception handlers
    @app.exception_handler(BookServiceError)
    async def book_service_exception_handler(request: Request, exc: BookServiceError):
        """Translate domain errors into HTTP responses."""
        status_code = status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed", path=request.url.path, error=exc.message, **exc.details)
        return error_response(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
        """Undecodable or wrongly typed request bodies."""
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid JSON")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            detail=str(exc) if config.debug else None
        )

    # Health check endpoints
    @app.get("/health", response_class=PlainTextResponse, tags=["Health"])
    async def health_check():
        """Liveness check."""
        return "OK"

    @app.get("/health/ready", response_class=PlainTextResponse, tags=["Health"])
    async def readiness_check(request: Request):
        """Readiness check: the database must answer."""
        store = getattr(request.app.state, "book_store", None)
        if store is None or not await store.ping():
            return PlainTextResponse("Database unavailable", status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        return "OK"

    @app.get("/swagger", include_in_schema=False)
    async def swagger_redirect():
        return RedirectResponse(url=app.docs_url, status_code=status.HTTP_302_FOUND)

    # Books endpoints
    @app.get(
        "/books",
        response_model=List[Book],
        responses={500: {"model": ErrorResponse}},
        tags=["Books"]
    )
    async def get_books(store: BookStore = Depends(get_book_store)):
        """Get all books, most recently created first."""
        return await store.list_books()

    @app.get(
        "/books/{book_id}",
        response_model=Book,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Books"]
    )
    async def get_book(book_id: str, store: BookStore = Depends(get_book_store)):
        """
        Get a single book by ID.

        - **book_id**: Book UUID
        """
        return await store.get_book(book_id)

    @app.post(
        "/books",
        response_model=Book,
        status_code=status.HTTP_201_CREATED,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Books"]
    )
    async def create_book(payload: BookRequest, store: BookStore = Depends(get_book_store)):
        """
        Add a new book to the library.

        - **title**: required
        - **author**: required
        - **year**: between 1000 and 2034
        """
        validate_book_request(payload)
        return await store.create_book(payload.title, payload.author, payload.year)

    @app.put(
        "/books/{book_id}",
        response_model=Book,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Books"]
    )
    async def update_book(book_id: str, payload: BookRequest, store: BookStore = Depends(get_book_store)):
        """Replace title, author and year of an existing book."""
        validate_book_request(payload)
        return await store.update_book(book_id, payload.title, payload.author, payload.year)

    @app.delete(
        "/books/{book_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Books"]
    )
    async def delete_book(book_id: str, store: BookStore = Depends(get_book_store)):
        """Delete a book from the library."""
        await store.delete_book(book_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # Utility endpoints
    @app.post(
        "/process-url",
        response_model=URLProcessResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Utils"]
    )
    async def process_url(payload: URLProcessRequest):
        """Return the URL without tracking parameters, plus its components."""
        result = normalize_url(payload.url)
        logger.info("URL processed", original=result.original_url, cleaned=result.cleaned_url)
        return result

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=get_config().host,
        port=get_config().port,
        log_level="info"
    )
