"""
Database Access
Thin document-store wrapper around a motor database
"""
import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from forex.config import Settings

logger = logging.getLogger(__name__)

# collection -> fields that get an index at startup; (field, True) is unique
INDEXES = {
    "requests": [("request_code", True), ("request_status", False), ("branch_id", False), ("department_id", False)],
    "users": [("username", True)],
    "roles": [("name", False)],
    "token_blacklist": [("token", False)],
}


class MongoStore:
    """
    Document store backed by MongoDB.

    Filters are plain Mongo filter documents. Services only use equality,
    $in, $nin and $ne so any store honouring that subset can stand in.
    """

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database

    async def insert_one(self, collection: str, document: Dict[str, Any]) -> Any:
        result = await self.database[collection].insert_one(document)
        return result.inserted_id

    async def find_one(self, collection: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return await self.database[collection].find_one(filter)

    async def find(self, collection: str, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self.database[collection].find(filter).to_list(length=None)

    async def update_one(self, collection: str, filter: Dict[str, Any], values: Dict[str, Any]) -> int:
        """Set the given fields on the first match, returning the matched count"""
        result = await self.database[collection].update_one(filter, {"$set": values})
        return result.matched_count

    async def count(self, collection: str, filter: Dict[str, Any]) -> int:
        return await self.database[collection].count_documents(filter)

    async def ensure_indexes(self):
        for collection, fields in INDEXES.items():
            for field, unique in fields:
                await self.database[collection].create_index(field, unique=unique)


def connect(settings: Settings) -> AsyncIOMotorClient:
    client = AsyncIOMotorClient(settings.MONGODB_URL)
    logger.info("MongoDB client created for database %s", settings.MONGODB_DB_NAME)
    return client
