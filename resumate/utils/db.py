import logging
import asyncio
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie
from resumate.models.resume import ResumeDocument
from resumate.services.config import settings

logger = logging.getLogger("uvicorn.error")

_db_initialized = False
_client = None
_db_lock = asyncio.Lock()


async def init_db():
    global _db_initialized, _client

    async with _db_lock:
        if _db_initialized:
            logger.debug("Database already initialized")
            return

        if not settings.MONGO_URI or not settings.DB_NAME:
            raise ValueError("Missing MONGO_URI or DB_NAME in environment variables")

        logger.info("Connecting to MongoDB...")
        _client = AsyncIOMotorClient(settings.MONGO_URI, tz_aware=True)
        db = _client[settings.DB_NAME]

        logger.info("Initializing Beanie with models...")
        await init_beanie(database=db, document_models=[ResumeDocument])

        _db_initialized = True
        logger.info("Database initialized successfully.")


def close_db():
    global _db_initialized, _client
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")
    _client = None
    _db_initialized = False
