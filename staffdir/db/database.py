from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from staffdir.core.config import get_settings
from staffdir.logging import get_logger, LogSection, LogSubsection

logger = get_logger("database")

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    """Клиент создаётся при первом обращении, а не при импорте модуля."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = AsyncIOMotorClient(settings.MONGO_URI)
        logger.info(
            section=LogSection.DATABASE,
            subsection=LogSubsection.DATABASE.CONNECTION,
            message=f"Создан клиент MongoDB для базы {settings.MONGO_DB_NAME}"
        )
    return _client


# dependency для FastAPI
async def get_database() -> AsyncIOMotorDatabase:
    return get_client()[get_settings().MONGO_DB_NAME]


def close_client():
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info(
            section=LogSection.DATABASE,
            subsection=LogSubsection.DATABASE.DISCONNECTION,
            message="Соединение с MongoDB закрыто"
        )
