"""
Weather Store
=============

Thin wrapper around the async MongoDB client.

The store is created once at startup and handed to the services that need
it. Nothing else in the app talks to MongoDB directly.

COLLECTIONS:
    users        - user accounts
    WeatherData  - weather readings (one document per reading)
    log          - copies of deleted readings (only when auditing is on)
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

logger = logging.getLogger(__name__)


class WeatherStore:
    """
    Collection-scoped access to the weather database.

    Usage:
        store = await WeatherStore.connect("mongodb://localhost:27017", "weather-api-for-education")
        ...
        store.close()

    Tests pass in any client with the Motor interface (e.g. mongomock-motor).
    """

    USERS_COLLECTION = "users"
    READINGS_COLLECTION = "WeatherData"
    LOG_COLLECTION = "log"

    def __init__(self, client, database_name: str):
        self.client = client
        self.database_name = database_name
        self.db = client[database_name]

    @classmethod
    async def connect(
        cls,
        url: str,
        database_name: str,
        timeout_ms: int = 5000,
        client: Optional[AsyncIOMotorClient] = None,
    ) -> "WeatherStore":
        """
        Create a client and make sure the server answers.

        Raises:
            pymongo.errors.PyMongoError: If the server can't be reached
        """
        if client is None:
            client = AsyncIOMotorClient(url, serverSelectionTimeoutMS=timeout_ms)
        store = cls(client, database_name)
        await store.ping()
        logger.info(f"[Store] Connected to MongoDB database '{database_name}'")
        return store

    @property
    def users(self):
        return self.db[self.USERS_COLLECTION]

    @property
    def readings(self):
        return self.db[self.READINGS_COLLECTION]

    @property
    def log(self):
        return self.db[self.LOG_COLLECTION]

    async def ping(self) -> bool:
        """Round-trip to the server. Raises if it is unreachable."""
        await self.client.admin.command("ping")
        return True

    def close(self):
        """Close the underlying client and its connection pool."""
        self.client.close()
        logger.info("[Store] MongoDB connection closed")
