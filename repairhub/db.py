import logging

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING

from repairhub.config import settings

logger = logging.getLogger(__name__)

class Database:
    def __init__(self):
        self.client = None
        self.db = None

    async def connect(self):
        if not self.client:
            self.client = AsyncIOMotorClient(settings.MONGODB_URI)
            self.db = self.client.get_database(settings.MONGODB_NAME)
        return self.db

    async def close(self):
        if self.client:
            self.client.close()
            self.client = None
            self.db = None

    async def ensure_indexes(self):
        """Create the indexes the queries rely on. Safe to call repeatedly."""
        if self.db is None:
            await self.connect()

        await self.db.users.create_index([("email", ASCENDING)], unique=True)
        await self.db.repairs.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
        await self.db.repairs.create_index([("technicianId", ASCENDING), ("status", ASCENDING)])
        await self.db.repairs.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
        await self.db.messages.create_index([("repairId", ASCENDING), ("createdAt", ASCENDING)])
        await self.db.messages.create_index([("senderId", ASCENDING), ("receiverId", ASCENDING)])
        logger.info("Database indexes ensured")

db = Database()

async def get_database():
    """Return the live database handle, connecting lazily."""
    if db.db is None:
        await db.connect()
    return db.db
