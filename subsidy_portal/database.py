from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from subsidy_portal.config import Settings, settings as default_settings


class MongoDB:
    client: AsyncIOMotorClient = None
    database: AsyncIOMotorDatabase = None


db = MongoDB()


async def connect_to_mongo(settings: Settings = default_settings) -> AsyncIOMotorDatabase:
    """Create database connection"""
    db.client = AsyncIOMotorClient(settings.mongodb_url)
    db.database = db.client[settings.mongodb_db_name]
    return db.database


async def close_mongo_connection():
    """Close database connection"""
    if db.client:
        db.client.close()
        db.client = None
        db.database = None
