# backend/config.py
from functools import lru_cache
from pathlib import Path
from typing import ClassVar

from pydantic_settings import BaseSettings

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stockroom.db"

    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    LOG_LEVEL: str = "INFO"

    # Load the demo warehouse on startup when the database is empty
    SEED_DEMO_DATA: bool = False

    RECENT_MOVEMENTS_LIMIT: int = 5

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
