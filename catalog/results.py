"""
Explicit result values for catalog operations.

Validators and the catalog service report expected failures (bad input,
missing records) by returning an OperationResult instead of raising, so the
caller decides how each kind of failure is surfaced.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """
    Kinds of failure, named as they appear in error responses.

    Only VALIDATION and NOT_FOUND are carried by an OperationResult.
    UNAUTHENTICATED and STORE_FAILURE name the 401 and 500 error bodies:
    token checks report failure as None, and driver errors are raised.
    """
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    STORE_FAILURE = "internal_error"


class CatalogError(BaseModel):
    """A single, user-visible failure."""
    kind: ErrorKind = Field(..., description="Failure category")
    message: str = Field(..., description="Human-readable message")
    field: Optional[str] = Field(None, description="Offending field, when there is one")


class OperationResult(BaseModel):
    """Either a value or an error, never both."""
    value: Any = None
    error: Optional[CatalogError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, field: Optional[str] = None) -> "OperationResult":
        return cls(error=CatalogError(kind=kind, message=message, field=field))

    @classmethod
    def invalid(cls, message: str, field: Optional[str] = None) -> "OperationResult":
        return cls.failure(ErrorKind.VALIDATION, message, field)

    @classmethod
    def not_found(cls, message: str) -> "OperationResult":
        return cls.failure(ErrorKind.NOT_FOUND, message)
