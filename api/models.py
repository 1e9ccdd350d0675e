"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """Credentials submitted to /auth/login."""
    username: str = Field(..., min_length=1, description="Login name")
    password: str = Field(..., min_length=1, max_length=72, description="Plaintext password")

    model_config = ConfigDict(extra="forbid")


class TokenResponse(BaseModel):
    """Bearer token issued on login."""
    token: str = Field(..., description="Opaque bearer token")


class AuthorResponse(BaseModel):
    """Author document as returned by the API."""
    id: str = Field(..., description="Author identifier")
    name: str = Field(..., description="Full name")
    birth_date: Optional[str] = Field(None, description="Date of birth (YYYY-MM-DD)")
    books_written: List[str] = Field(default_factory=list, description="Titles written by the author")


class BookResponse(BaseModel):
    """Book document as returned by the API."""
    id: str = Field(..., description="Book identifier")
    title: str = Field(..., description="Title")
    authors: List[str] = Field(default_factory=list, description="Author names")
    publication_year: Optional[int] = Field(None, description="Year of publication")
    description: Optional[str] = Field(None, description="Short description")


class CreatedResponse(BaseModel):
    """Result of a create operation."""
    status: str = Field("success", description="Operation status")
    data: Dict[str, Any] = Field(..., description="Stored fields")
    id: str = Field(..., description="Identifier of the new document")


class StatusResponse(BaseModel):
    """Result of an update or delete operation."""
    status: str = Field("success", description="Operation status")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error kind")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
