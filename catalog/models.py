"""
Pydantic models for catalog documents.

Authors and books are decoded through one explicit schema per resource and
mode (create or update). Unknown fields are rejected, required fields must be
present and non-empty, and an explicit null counts as empty.
"""

import re
from datetime import date, datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictInt, StringConstraints, field_validator
from pydantic_core import PydanticCustomError


NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]
NonEmptyList = Annotated[List[NonEmptyStr], Field(min_length=1)]

_ISO_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def parse_iso_date(value: Any) -> date:
    """Accept only a calendar date written as YYYY-MM-DD."""
    if not isinstance(value, str) or _ISO_DATE_PATTERN.fullmatch(value) is None:
        raise PydanticCustomError("date_format", "Date must be a string in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise PydanticCustomError("date_format", "Date must be a valid calendar date")


IsoDate = Annotated[date, BeforeValidator(parse_iso_date)]


def serialize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a MongoDB document with ``_id`` rendered as ``id``."""
    result = {key: value for key, value in document.items() if key != "_id"}
    if "_id" in document:
        result = {"id": str(document["_id"]), **result}
    return result


class CatalogDocument(BaseModel):
    """Base schema for client-supplied catalog documents."""

    model_config = ConfigDict(extra="forbid")

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise PydanticCustomError("empty_field", "Field must not be empty")
        return value

    def to_document(self) -> Dict[str, Any]:
        """Fields the client actually sent, in storable form."""
        return self.model_dump(mode="json", exclude_unset=True)


class AuthorCreate(CatalogDocument):
    """Author as submitted on create."""
    name: NonEmptyStr = Field(..., description="Full name, unique across authors")
    birth_date: IsoDate = Field(..., description="Date of birth (YYYY-MM-DD)")
    books_written: NonEmptyList = Field(..., description="Titles written by the author")

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "name": "Gabriel García Márquez",
                "birth_date": "1927-03-06",
                "books_written": ["Cien años de soledad"]
            }
        }
    )


class AuthorUpdate(CatalogDocument):
    """Author fields accepted on update; any subset may be sent."""
    name: Optional[NonEmptyStr] = None
    birth_date: Optional[IsoDate] = None
    books_written: Optional[NonEmptyList] = None


class BookCreate(CatalogDocument):
    """Book as submitted on create."""
    title: NonEmptyStr = Field(..., description="Title, unique across books")
    authors: NonEmptyList = Field(..., description="Names of existing authors")
    publication_year: StrictInt = Field(..., description="Year of publication")
    description: NonEmptyStr = Field(..., description="Short description")

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "Cien años de soledad",
                "authors": ["Gabriel García Márquez"],
                "publication_year": 1967,
                "description": "The multi-generational story of the Buendía family."
            }
        }
    )


class BookUpdate(CatalogDocument):
    """Book fields accepted on update; any subset may be sent."""
    title: Optional[NonEmptyStr] = None
    authors: Optional[NonEmptyList] = None
    publication_year: Optional[StrictInt] = None
    description: Optional[NonEmptyStr] = None


class UserRecord(BaseModel):
    """A stored user."""
    id: str = Field(..., description="User identifier")
    username: str = Field(..., description="Unique login name")
    password_hash: str = Field(..., repr=False, description="bcrypt hash")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "UserRecord":
        return cls(**serialize_document(document))


class TokenRecord(BaseModel):
    """A stored bearer token."""
    id: Optional[str] = Field(None, description="Token document identifier")
    token: str = Field(..., description="Opaque hex token value")
    user_id: str = Field(..., description="Identifier of the owning user")
    expiry: datetime = Field(..., description="Absolute expiry time (UTC)")

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, v):
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @field_validator("expiry")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """The driver hands back naive datetimes unless the client is tz-aware."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def is_expired(self, now: datetime) -> bool:
        """A token is valid only while its expiry is strictly in the future."""
        return self.expiry <= now

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "TokenRecord":
        return cls(**serialize_document(document))

    def to_document(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "user_id": ObjectId(self.user_id),
            "expiry": self.expiry,
        }
