import logging
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError
from core.base.exception import DatastoreUnavailableError

logger = logging.getLogger(__name__)

class MongoClient:
    def __init__(self, uri: str, db_name: str):
        self.db_name = db_name
        self.client = AsyncIOMotorClient(uri)

    async def ping(self):
        """Ping the database and return it if no exceptions."""
        db = self.client.get_database(self.db_name)
        try:
            ping_response = await db.command("ping")
        except PyMongoError as e:
            raise DatastoreUnavailableError(details=str(e))
        if int(ping_response["ok"]) != 1:
            raise DatastoreUnavailableError(f"Problem connecting to cluster: {self.db_name}")
        logger.info("Database [%s] connected successfully", self.db_name)
        return db

    async def ensure_indexes(self, db):
        """Indexes backing the point lookups used by the API."""
        try:
            await db["subscribers"].create_index("uid", unique=True)
            await db["subscribers"].create_index("email")
            await db["blog_posts"].create_index("slug", unique=True)
        except PyMongoError as e:
            raise DatastoreUnavailableError(details=str(e))

    async def close(self):
        """Close MongoDB client"""
        self.client.close()
        logger.info("MongoDB client closed")

