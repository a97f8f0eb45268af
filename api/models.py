"""
API request and response envelopes.

Bodies and responses are keyed by resource name, e.g. ``{"review": {...}}``.
"""

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field

from catalog.models import (
    AuthorData, AuthorResponse, BookData, BookResponse, BookUpdate,
    GenreData, GenreResponse
)
from community.models import (
    AuthUserResponse, LoginUser, ProfileResponse, ProfileUpdate,
    ReviewData, ReviewResponse, SignupUser
)


# Catalog

class GenreBody(BaseModel):
    genre: GenreData


class GenreEnvelope(BaseModel):
    genre: GenreResponse


class GenreListResponse(BaseModel):
    """Response model for the genre list."""
    genres: List[GenreResponse] = Field(..., description="Genres sorted by name")


class AuthorBody(BaseModel):
    author: AuthorData


class AuthorEnvelope(BaseModel):
    author: AuthorResponse


class AuthorListResponse(BaseModel):
    """Response model for the author list."""
    authors: List[AuthorResponse] = Field(..., description="Authors sorted by family name")


class BookBody(BaseModel):
    book: BookData


class BookUpdateBody(BaseModel):
    book: BookUpdate


class BookEnvelope(BaseModel):
    book: BookResponse


class BookListResponse(BaseModel):
    """Response model for the book list."""
    books: List[BookResponse] = Field(..., description="Books sorted by title")


# Users

class SignupBody(BaseModel):
    user: Optional[SignupUser] = None


class LoginBody(BaseModel):
    user: Optional[LoginUser] = None


class ProfileUpdateBody(BaseModel):
    user: Optional[ProfileUpdate] = None


class UserEnvelope(BaseModel):
    user: Union[AuthUserResponse, ProfileResponse]


class ProfileEnvelope(BaseModel):
    user: ProfileResponse


# Reviews

class ReviewBody(BaseModel):
    review: Optional[ReviewData] = None


class ReviewEnvelope(BaseModel):
    review: ReviewResponse


# Common

class ErrorDetail(BaseModel):
    message: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: ErrorDetail
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
