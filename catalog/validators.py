"""
Validation for author and book writes.

Each validator decodes the request body through the resource schema, then
checks the natural key for uniqueness and, for books, that every listed
author exists. Checks run in a fixed order and the first violation is
returned as a failed OperationResult; a successful result carries the
decoded document ready to be stored.
"""

import re
from typing import Any, Dict, Iterable, Optional, Tuple, Type

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from .database import AUTHORS_COLLECTION, BOOKS_COLLECTION
from .models import AuthorCreate, AuthorUpdate, BookCreate, BookUpdate, CatalogDocument
from .results import OperationResult

logger = structlog.get_logger(__name__)

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

_EMPTY_ERRORS = {"missing", "empty_field", "string_too_short", "too_short"}

_TYPE_MESSAGES = {
    "string_type": "must be a string",
    "list_type": "must be a list",
    "int_type": "must be an integer",
    "int_parsing": "must be an integer",
    "int_from_float": "must be an integer",
    "date_format": "must be a date (YYYY-MM-DD)",
}


def is_valid_object_id(value: Any) -> bool:
    """True if value is a 24 character hexadecimal string."""
    return isinstance(value, str) and OBJECT_ID_PATTERN.fullmatch(value) is not None


def describe_error(error: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    """
    Turn one pydantic error entry into a message and field name.

    Works for both pydantic.ValidationError.errors() and FastAPI's
    RequestValidationError.errors(); the "body" location prefix is skipped.
    """
    loc = [part for part in error.get("loc", ()) if part != "body"]
    field = str(loc[0]) if loc else None
    error_type = error.get("type", "")

    if error_type == "json_invalid":
        return "Request body must be valid JSON.", None

    if field is None:
        return "Request body must be a JSON object.", None

    if error_type == "extra_forbidden":
        return f"Unknown field: {field}.", field

    if error_type in _EMPTY_ERRORS:
        if len(loc) > 1:
            return f"Field {field} must not contain empty values.", field
        return f"Missing required field: {field}.", field

    if error_type in _TYPE_MESSAGES:
        target = field if len(loc) == 1 else f"{field} entries"
        return f"Field {target} {_TYPE_MESSAGES[error_type]}.", field

    return f"Invalid value for field {field}: {error.get('msg', 'invalid')}.", field


def describe_errors(errors: Iterable[Dict[str, Any]]) -> Tuple[str, Optional[str]]:
    """Describe the first error of a list."""
    for error in errors:
        return describe_error(error)
    return "Invalid request.", None


def decode(schema: Type[CatalogDocument], data: Any) -> OperationResult:
    """Decode a request body through a schema, keeping only the first error."""
    if not isinstance(data, dict):
        return OperationResult.invalid("Request body must be a JSON object.")

    try:
        model = schema.model_validate(data)
    except ValidationError as e:
        message, field = describe_errors(e.errors())
        return OperationResult.invalid(message, field=field)

    document = model.to_document()
    if not document:
        return OperationResult.invalid("No fields provided for update.")
    return OperationResult.success(document)


class ResourceValidator:
    """
    Shared validation flow for a collection with one natural key.

    Subclasses set the collection, schemas and key, and may add
    cross-reference checks in ``check_references``.
    """

    collection_name: str
    create_schema: Type[CatalogDocument]
    update_schema: Type[CatalogDocument]
    natural_key: str
    label: str

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.collection = database[self.collection_name]

    def invalid_id(self) -> OperationResult:
        return OperationResult.invalid(f"Invalid {self.label.lower()} ID.", field="id")

    def duplicate(self, value: Any) -> OperationResult:
        return OperationResult.invalid(
            f"{self.label} with {self.natural_key} '{value}' already exists.",
            field=self.natural_key,
        )

    async def validate_for_create(self, data: Any) -> OperationResult:
        """Validate a new record; success carries the document to insert."""
        result = decode(self.create_schema, data)
        if result.ok:
            result = await self._check_store(result.value)
        self._log_rejection(result, mode="create")
        return result

    async def validate_for_update(self, record_id: str, data: Any) -> OperationResult:
        """Validate changes to an existing record; success carries the fields to set."""
        if not is_valid_object_id(record_id):
            return self.invalid_id()

        result = decode(self.update_schema, data)
        if result.ok:
            result = await self._check_store(result.value, ObjectId(record_id))
        self._log_rejection(result, mode="update", record_id=record_id)
        return result

    async def _check_store(self, document: Dict[str, Any], record_id: Optional[ObjectId] = None) -> OperationResult:
        key_value = document.get(self.natural_key)
        if key_value is not None:
            existing = await self.collection.find_one({self.natural_key: key_value})
            if existing is not None and (record_id is None or existing["_id"] != record_id):
                return self.duplicate(key_value)

        references = await self.check_references(document)
        if not references.ok:
            return references

        return OperationResult.success(document)

    async def check_references(self, document: Dict[str, Any]) -> OperationResult:
        return OperationResult.success()

    def _log_rejection(self, result: OperationResult, **context) -> None:
        if not result.ok:
            logger.info(
                "Validation rejected",
                resource=self.label.lower(),
                field=result.error.field,
                message=result.error.message,
                **context
            )


class AuthorValidator(ResourceValidator):
    """Authors are unique by name."""
    collection_name = AUTHORS_COLLECTION
    create_schema = AuthorCreate
    update_schema = AuthorUpdate
    natural_key = "name"
    label = "Author"


class BookValidator(ResourceValidator):
    """Books are unique by title and may only list existing authors."""
    collection_name = BOOKS_COLLECTION
    create_schema = BookCreate
    update_schema = BookUpdate
    natural_key = "title"
    label = "Book"

    def __init__(self, database: AsyncIOMotorDatabase):
        super().__init__(database)
        self.authors_collection = database[AUTHORS_COLLECTION]

    async def check_references(self, document: Dict[str, Any]) -> OperationResult:
        for author_name in document.get("authors", []):
            author = await self.authors_collection.find_one({"name": author_name})
            if author is None:
                return OperationResult.invalid(f"Author '{author_name}' does not exist.", field="authors")
        return OperationResult.success()
