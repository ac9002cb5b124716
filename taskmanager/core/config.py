"""
Application Configuration - Environment-driven settings
"""

from functools import lru_cache
from typing import List, Optional
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "change-me-in-production"


class Settings(BaseSettings):
    """
    All settings are read from environment variables (or a local .env file).
    Defaults are suitable for local development only.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Application
    APP_NAME: str = "Task Manager API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, production
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./taskmanager.db"
    DB_POOL_SIZE: int = 5  # Persistent connections (ignored for SQLite)
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30  # Seconds

    # Security
    SECRET_KEY: str = DEFAULT_SECRET_KEY  # JWT signing key
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24  # 24 hours
    BCRYPT_ROUNDS: int = 12

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Admin bootstrap - created at startup when no admin exists
    ADMIN_EMAIL: Optional[str] = None
    ADMIN_PASSWORD: Optional[str] = None
    ADMIN_NAME: str = "Administrator"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance (read environment once)"""
    return Settings()


settings = get_settings()


def is_production() -> bool:
    """True when running in production environment"""
    return settings.ENVIRONMENT.lower() == "production"


def validate_config() -> None:
    """
    Validate settings at startup - fail fast on unsafe configuration.

    Raises:
        ValueError: If a production deployment uses development defaults
    """
    if is_production():
        if settings.SECRET_KEY == DEFAULT_SECRET_KEY or len(settings.SECRET_KEY) < 32:
            raise ValueError("SECRET_KEY must be set to a random value of at least 32 characters in production")
        if settings.DEBUG:
            raise ValueError("DEBUG must be disabled in production")
        if settings.DATABASE_URL.startswith("sqlite"):
            raise ValueError("SQLite is not supported in production - set DATABASE_URL")

    if settings.ADMIN_EMAIL and not settings.ADMIN_PASSWORD:
        raise ValueError("ADMIN_PASSWORD is required when ADMIN_EMAIL is set")

    if settings.BCRYPT_ROUNDS < 4 or settings.BCRYPT_ROUNDS > 31:
        raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")

    logger.info("✅ Configuration validated")
