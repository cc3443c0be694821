"""MongoDB connection for the application lifespan."""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from interview_app.config import settings

logger = logging.getLogger(__name__)


class Database:
    """Holds the process-wide Motor client opened at startup."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect(cls, url: Optional[str] = None, db_name: Optional[str] = None):
        """Open the client and ping the server so a bad URL fails at startup."""
        url = url or settings.mongodb_url
        db_name = db_name or settings.mongodb_db_name
        client = AsyncIOMotorClient(url, serverSelectionTimeoutMS=settings.mongodb_timeout_ms)
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            client.close()
            logger.error(f"Could not reach MongoDB for database {db_name}: {e}")
            raise
        cls.client = client
        cls.db = client[db_name]
        logger.info(f"Connected to MongoDB: {db_name}")

    @classmethod
    async def disconnect(cls):
        if cls.client is None:
            return
        cls.client.close()
        cls.client = None
        cls.db = None
        logger.info("Disconnected from MongoDB")

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        if cls.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return cls.db


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for the connected database."""
    return Database.get_database()
