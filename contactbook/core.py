"""Application configuration and settings management.

This module defines the application settings loaded from environment
variables and provides helper functions for accessing cached settings
and configuring logging.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Attributes:
        DATABASE_URL: Database connection string.
        SECRET_KEY: Secret key used for JWT signing.
        ALGORITHM: Algorithm used to encode JWT tokens.
        ACCESS_TOKEN_EXPIRE_MINUTES: Access token lifetime in minutes.
        ALLOWED_ORIGINS: Allowed origins for CORS.
        REDIS_URL: Redis connection URL for the token denylist.
        CLOUDINARY_URL: Cloudinary connection URL for photo uploads.
        STORAGE_BACKEND: Photo storage backend (``local``, ``cloudinary``
            or ``memory``).
        STORAGE_ROOT: Directory used by the local storage backend.
        BASE_URL: Base URL of the application, used for photo URLs.
        LOG_LEVEL: Root log level.
        PHOTO_MAX_KB: Maximum accepted photo size in kilobytes.
        CONTACTS_PER_PAGE: Default page size of the contact list.
        CONTACTS_MAX_PER_PAGE: Upper bound for the requested page size.
    """

    DATABASE_URL: str = "sqlite:///./app.db"
    SECRET_KEY: str = "dev-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    ALLOWED_ORIGINS: List[str] = ["*"]
    REDIS_URL: str = "redis://redis:6379"
    CLOUDINARY_URL: str | None = None
    STORAGE_BACKEND: str = "local"
    STORAGE_ROOT: str = "./storage"
    BASE_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"
    PHOTO_MAX_KB: int = 2048
    CONTACTS_PER_PAGE: int = 5
    CONTACTS_MAX_PER_PAGE: int = 100

    class Config:
        """Pydantic configuration for loading environment variables."""

        env_file = ".env"
        extra = "allow"


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings.

    The settings object is cached to prevent reloading environment
    variables multiple times during application lifetime.
    """

    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from ``LOG_LEVEL``."""

    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
