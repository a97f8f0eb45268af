"""
MongoDB connection management.
Handles connection, index creation and shutdown for the application collections.
"""

from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure
import structlog

logger = structlog.get_logger(__name__)


class MongoDBManager:
    """
    Async MongoDB manager owning the client for the API process.
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

    async def connect(self) -> AsyncIOMotorDatabase:
        """Establish connection to MongoDB and make sure indexes exist."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()
            return self.database

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """
        Create indexes for the lookups the handlers perform.
        """
        try:
            await self.database.genres.create_index("name", unique=True)

            await self.database.authors.create_index([("family_name", 1), ("first_name", 1)])

            await self.database.books.create_index("title")
            await self.database.books.create_index("author")
            await self.database.books.create_index("genre")

            await self.database.users.create_index("username", unique=True)
            await self.database.users.create_index("email", unique=True)
            # Follower and favorite counts are recomputed from these
            await self.database.users.create_index("following")
            await self.database.users.create_index("favorites")

            await self.database.reviews.create_index([("created_at", -1)])
            await self.database.reviews.create_index("tags")
            await self.database.reviews.create_index("review_author")
            await self.database.reviews.create_index("book")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status and collection sizes
        """
        try:
            await self.database.command("ping")
            return {
                "status": "healthy",
                "books_count": await self.database.books.count_documents({}),
                "users_count": await self.database.users.count_documents({}),
                "reviews_count": await self.database.reviews.count_documents({}),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
