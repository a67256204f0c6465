import logging

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient

from contentauth.config import Settings

logger = logging.getLogger(__name__)


class DatabaseClient:
    """
    Database client for the MongoDB connection and collections.

    One instance is created at application startup and closed at shutdown;
    repositories receive it through their constructor.
    """

    def __init__(self, settings: Settings):
        """
        Initialize the Motor client for the configured database.

        Args:
            settings: Application settings holding the connection details
        """
        self.client = AsyncIOMotorClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
            tz_aware=True,
        )
        self.db = self.client[settings.mongo_db_name]
        self.content_collection = self.db["content"]

        logger.info(f"MongoDB client created for database: {settings.mongo_db_name}")

    def get_collection(self, collection_name: str):
        """
        Get a collection by name.

        Args:
            collection_name: Name of the collection

        Returns:
            AsyncIOMotorCollection
        """
        return self.db[collection_name]

    async def ping(self) -> bool:
        """Test database connection"""
        try:
            await self.client.admin.command('ping')
            return True
        except Exception as e:
            logger.error(f"Database ping failed: {str(e)}")
            return False

    def close(self):
        """Close the MongoDB connection."""
        self.client.close()
        logger.info("MongoDB connection closed")


def get_db_client(request: Request) -> DatabaseClient:
    """
    Get the database client created by the application lifespan.

    Returns:
        DatabaseClient instance
    """
    return request.app.state.db_client
