# MongoDB connection lifecycle
# bingeclub/data_access/mongo_client.py

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, PyMongoError

from bingeclub.core.config import Settings

logger = logging.getLogger(__name__)


class MongoConnection:
    """
    Owns the Motor client for the lifetime of the application. Created in the
    FastAPI lifespan and kept on `app.state`; nothing module-global.
    """
    def __init__(self, settings: Settings):
        self.settings = settings
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self) -> None:
        """
        Opens the client and pings the server. A failed connection leaves
        `db` as None so requests get a 503 rather than the app refusing to boot.
        """
        uri = self.settings.MONGODB_URI.get_secret_value()
        logger.info(f"Attempting to connect to MongoDB: {uri[:15]}...") # Log partial URI safely
        try:
            self.client = AsyncIOMotorClient(uri)
            await self.client.admin.command('ping')

            db_name = self.settings.MONGODB_DB_NAME
            self.db = self.client[db_name]
            logger.info(f"MongoDB client initialized successfully. Using database: '{db_name}'")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed during initialization: {e}", exc_info=True)
            self.db = None
        except PyMongoError as e:
            logger.error(f"Unexpected error initializing MongoDB client: {e}", exc_info=True)
            self.db = None

    def close(self) -> None:
        if self.client:
            self.client.close()
            logger.info("MongoDB client closed.")
        self.client = None
        self.db = None
