"""
MongoDB database utilities for async operations.
Handles connection, collection setup and unique indexes for the catalog.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError

logger = structlog.get_logger(__name__)

USERS_COLLECTION = "users"
TOKENS_COLLECTION = "tokens"
AUTHORS_COLLECTION = "authors"
BOOKS_COLLECTION = "books"

# Natural keys enforced by unique indexes
UNIQUE_KEYS = {
    USERS_COLLECTION: "username",
    TOKENS_COLLECTION: "token",
    AUTHORS_COLLECTION: "name",
    BOOKS_COLLECTION: "title",
}


class MongoDBManager:
    """
    Async MongoDB manager for the catalog database.
    Owns the client; callers get the database handle from it.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    async def connect(self, create_indexes: bool = True) -> AsyncIOMotorDatabase:
        """Establish connection to MongoDB and return the database handle."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url, tz_aware=True)
            self.database = self.client[self.database_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            if create_indexes:
                await self.create_indexes()

            return self.database

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def create_collections(self) -> Dict[str, bool]:
        """
        Create any missing catalog collections.

        Returns:
            Mapping of collection name to whether it was created now
        """
        existing = set(await self.database.list_collection_names())
        created = {}
        for name in UNIQUE_KEYS:
            if name not in existing:
                await self.database.create_collection(name)
                logger.info("Collection created", collection=name)
            created[name] = name not in existing
        return created

    async def create_indexes(self) -> None:
        """Create one unique index per natural key."""
        try:
            for collection_name, key in UNIQUE_KEYS.items():
                await self.database[collection_name].create_index(key, unique=True)

            # Lookups of a user's tokens
            await self.database[TOKENS_COLLECTION].create_index("user_id")

            logger.info("Successfully created MongoDB indexes")

        except PyMongoError as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def purge_expired_tokens(self, now: Optional[datetime] = None) -> int:
        """
        Delete tokens whose expiry has passed.

        Never called by the API; expired tokens stay until an operator runs this.

        Returns:
            Number of tokens removed
        """
        now = now or datetime.now(timezone.utc)
        try:
            result = await self.database[TOKENS_COLLECTION].delete_many({"expiry": {"$lte": now}})
            logger.info("Expired tokens purged", count=result.deleted_count)
            return result.deleted_count
        except PyMongoError as e:
            logger.error("Failed to purge expired tokens", error=str(e))
            raise

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")

            counts = {}
            for name in (AUTHORS_COLLECTION, BOOKS_COLLECTION):
                counts[f"{name}_count"] = await self.database[name].count_documents({})

            return {"status": "healthy", **counts}
        except PyMongoError as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
