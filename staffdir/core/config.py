# staffdir/core/config.py

from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Загружаем переменные окружения из .env (если он есть)
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Сообщаем Pydantic брать переменные окружения и .env
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Medical Staff Directory"
    APP_VERSION: str = "1.0.0"

    # Настройки MongoDB
    MONGO_URI: str
    MONGO_DB_NAME: str
    USERS_COLLECTION: str = "users"

    # Стоимость bcrypt (имя переменной осталось историческим)
    HASH_SALT: int = 10


@lru_cache
def get_settings() -> Settings:
    """Кэшированный экземпляр настроек."""
    return Settings()
