"""
Catalog service layer for the FastAPI application.
"""

from typing import Any, Dict, List

import structlog
from bson import ObjectId
from fastapi import Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from catalog.models import serialize_document
from catalog.results import OperationResult
from catalog.validators import AuthorValidator, BookValidator, ResourceValidator, is_valid_object_id

logger = structlog.get_logger(__name__)


class CatalogService:
    """Author and book operations for the API."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.author_validator = AuthorValidator(database)
        self.book_validator = BookValidator(database)
        self.authors_collection = self.author_validator.collection
        self.books_collection = self.book_validator.collection

    # Authors

    async def list_authors(self) -> List[Dict[str, Any]]:
        return await self._list(self.authors_collection)

    async def get_author(self, author_id: str) -> OperationResult:
        return await self._get(self.author_validator, author_id)

    async def create_author(self, data: Any) -> OperationResult:
        return await self._create(self.author_validator, data)

    async def update_author(self, author_id: str, data: Any) -> OperationResult:
        return await self._update(self.author_validator, author_id, data)

    async def delete_author(self, author_id: str) -> OperationResult:
        # Books naming this author are left as they are
        return await self._delete(self.author_validator, author_id)

    # Books

    async def list_books(self) -> List[Dict[str, Any]]:
        return await self._list(self.books_collection)

    async def get_book(self, book_id: str) -> OperationResult:
        return await self._get(self.book_validator, book_id)

    async def create_book(self, data: Any) -> OperationResult:
        return await self._create(self.book_validator, data)

    async def update_book(self, book_id: str, data: Any) -> OperationResult:
        return await self._update(self.book_validator, book_id, data)

    async def delete_book(self, book_id: str) -> OperationResult:
        return await self._delete(self.book_validator, book_id)

    # Shared operations

    async def _list(self, collection: AsyncIOMotorCollection) -> List[Dict[str, Any]]:
        try:
            documents = await collection.find({}).to_list(length=None)
            return [serialize_document(document) for document in documents]
        except PyMongoError as e:
            logger.error("Failed to list documents", collection=collection.name, error=str(e))
            raise

    async def _get(self, validator: ResourceValidator, record_id: str) -> OperationResult:
        """
        Fetch one record by id.

        Returns:
            OperationResult with the serialized document, an invalid-id
            error, or a not-found error
        """
        if not is_valid_object_id(record_id):
            return validator.invalid_id()

        try:
            document = await validator.collection.find_one({"_id": ObjectId(record_id)})
        except PyMongoError as e:
            logger.error("Failed to get document", resource=validator.label, record_id=record_id, error=str(e))
            raise

        if document is None:
            return OperationResult.not_found(f"{validator.label} not found.")
        return OperationResult.success(serialize_document(document))

    async def _create(self, validator: ResourceValidator, data: Any) -> OperationResult:
        """
        Validate and insert a new record.

        Returns:
            OperationResult whose value is {"status", "data", "id"}
        """
        result = await validator.validate_for_create(data)
        if not result.ok:
            return result

        document = result.value
        try:
            inserted = await validator.collection.insert_one(dict(document))
        except DuplicateKeyError:
            # Lost a race with a concurrent create of the same key
            return validator.duplicate(document[validator.natural_key])
        except PyMongoError as e:
            logger.error("Failed to create document", resource=validator.label, error=str(e))
            raise

        record_id = str(inserted.inserted_id)
        logger.info("Document created", resource=validator.label, record_id=record_id)
        return OperationResult.success({"status": "success", "data": document, "id": record_id})

    async def _update(self, validator: ResourceValidator, record_id: str, data: Any) -> OperationResult:
        result = await validator.validate_for_update(record_id, data)
        if not result.ok:
            return result

        changes = result.value
        try:
            updated = await validator.collection.update_one(
                {"_id": ObjectId(record_id)},
                {"$set": changes}
            )
        except DuplicateKeyError:
            return validator.duplicate(changes.get(validator.natural_key))
        except PyMongoError as e:
            logger.error("Failed to update document", resource=validator.label, record_id=record_id, error=str(e))
            raise

        if updated.matched_count == 0:
            return OperationResult.not_found(f"{validator.label} not found.")

        logger.info("Document updated", resource=validator.label, record_id=record_id)
        return OperationResult.success({"status": "success"})

    async def _delete(self, validator: ResourceValidator, record_id: str) -> OperationResult:
        if not is_valid_object_id(record_id):
            return validator.invalid_id()

        try:
            deleted = await validator.collection.delete_one({"_id": ObjectId(record_id)})
        except PyMongoError as e:
            logger.error("Failed to delete document", resource=validator.label, record_id=record_id, error=str(e))
            raise

        if deleted.deleted_count == 0:
            return OperationResult.not_found(f"{validator.label} not found.")

        logger.info("Document deleted", resource=validator.label, record_id=record_id)
        return OperationResult.success({"status": "success"})


def get_database(request: Request) -> AsyncIOMotorDatabase:
    """Database handle opened by the application lifespan."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return database


def get_catalog_service(database: AsyncIOMotorDatabase = Depends(get_database)) -> CatalogService:
    return CatalogService(database)
