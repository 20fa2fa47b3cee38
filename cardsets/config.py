"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. Every field has a default that is only safe for local development:
a real deployment must at least override SESSION_SECRET and DATABASE_URL.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from cardsets.config import settings
    print(settings.SESSION_SECRET)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the Card Sets API.

    Image storage backend selection:
      - AZURE_STORAGE_CONNECTION_STRING set   -> Azure Blob Storage container
      - AZURE_STORAGE_CONNECTION_STRING unset -> local directory UPLOAD_DIR,
                                                 served at UPLOAD_URL_PREFIX
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Card Sets API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for local development; use an async driver URL in production
    # (e.g. postgresql+asyncpg://... or mysql+aiomysql://...)
    DATABASE_URL: str = "sqlite+aiosqlite:///./cardsets.db"

    # --- Sessions ---
    SESSION_SECRET: str = "dev-secret-change-me"
    SESSION_COOKIE_NAME: str = "sid"
    SESSION_MAX_AGE_SECONDS: int = 24 * 60 * 60
    # Set to True when serving over HTTPS
    SESSION_COOKIE_SECURE: bool = False

    # --- Password hashing ---
    # Argon2 time cost (number of passes); raise it as hardware allows
    PASSWORD_HASH_ROUNDS: int = 3

    # --- Image uploads ---
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
    IMAGE_MAX_WIDTH: int = 1200
    IMAGE_JPEG_QUALITY: int = 80

    # Local disk backend
    UPLOAD_DIR: str = "./uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"

    # Azure Blob Storage backend
    AZURE_STORAGE_CONNECTION_STRING: str | None = None
    AZURE_CONTAINER_NAME: str = "uploads"

    # --- CORS ---
    # Origins allowed to make cross-origin requests (frontend URLs)
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
