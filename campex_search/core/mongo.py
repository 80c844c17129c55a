import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from campex_search.core.config import settings

logger = logging.getLogger(__name__)
mongo_client: AsyncIOMotorClient | None = None
mongo_db: AsyncIOMotorDatabase | None = None


async def connect_mongo():
    global mongo_client, mongo_db
    mongo_client = AsyncIOMotorClient(settings.MONGO_URL)
    mongo_db = mongo_client[settings.MONGO_DB_NAME]
    logger.info(f"Connected to MongoDB: {settings.MONGO_DB_NAME}")
    await ensure_indexes(mongo_db)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Indexes backing filtered hydration, type-ahead ordering and the embedding backlog"""
    products = db[settings.PRODUCTS_COLLECTION]
    await products.create_index([("is_active", ASCENDING), ("category_id", ASCENDING), ("price", ASCENDING)])
    await products.create_index([("is_active", ASCENDING), ("university_id", ASCENDING)])
    await products.create_index([("title", ASCENDING), ("_id", ASCENDING)])
    await products.create_index([("embedded_at", ASCENDING)])
    logger.info(f"Ensured indexes on {settings.PRODUCTS_COLLECTION}")


async def close_mongo():
    global mongo_client, mongo_db
    if mongo_client:
        mongo_client.close()
        mongo_client = None
        mongo_db = None
        logger.info("MongoDB connection closed")


def get_mongo_db() -> AsyncIOMotorDatabase:
    if mongo_db is None:
        raise RuntimeError("MongoDB not connected. Ensure connect_mongo() was called.")
    return mongo_db
