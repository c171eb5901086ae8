"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This pattern keeps secrets out of source code — the .env file is
gitignored, and .env.example provides a safe template for developers.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from backoffice.config import settings
    print(settings.SECRET_KEY)
"""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the back-office API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Back-office Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    # SQLite for development; swap to a PostgreSQL (asyncpg) URL for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/backoffice.db"

    # --- Authentication ---
    # REQUIRED: no default, so a real secret must be set
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Receipts ---
    # Directory the local receipt store writes into, and the public URL prefix
    # it hands back. Receipts are images or PDFs up to MAX_RECEIPT_BYTES.
    UPLOAD_DIR: str = "./data/receipts"
    RECEIPT_BASE_URL: str = "/media/receipts"
    MAX_RECEIPT_BYTES: int = 5 * 1024 * 1024

    # --- Pagination ---
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 200


def configure_logging(config: Settings) -> None:
    """
    Configure the root logger once per process.

    Module loggers (logging.getLogger(__name__)) inherit this level and
    format. SQL statement echo stays controlled by DEBUG on the engine.
    """
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
