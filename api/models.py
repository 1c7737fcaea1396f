"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Book(BaseModel):
    """Book as stored and returned by the API."""
    id: UUID = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    year: int = Field(..., description="Publication year")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "3f1c2b7e-9a4d-4c1e-8f0a-5b6d7e8f9a0b",
                "title": "The Pragmatic Programmer",
                "author": "Andrew Hunt",
                "year": 1999,
                "created_at": "2025-09-21T10:00:00Z",
                "updated_at": "2025-09-21T10:00:00Z",
            }
        }
    }


class BookRequest(BaseModel):
    """
    Payload for creating or replacing a book.

    Missing fields decode to empty values so that the validator reports
    them by name.
    """
    title: str = Field("", description="Book title")
    author: str = Field("", description="Book author")
    year: int = Field(0, description="Publication year (1000-2034)")

    model_config = {"strict": True}


class URLProcessRequest(BaseModel):
    """Payload for the URL cleanup endpoint."""
    url: str = Field("", description="URL to normalize")

    model_config = {"strict": True}


class URLProcessResponse(BaseModel):
    """Components of a normalized URL."""
    original_url: str = Field(..., description="URL as submitted")
    cleaned_url: str = Field(..., description="URL without tracking parameters")
    domain: str = Field(..., description="Host part of the URL")
    path: str = Field(..., description="Path as parsed, before trailing slash removal")
    query: str = Field(..., description="Re-encoded query without tracking parameters")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")
