"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. Nothing here is secret, so every field has a usable default and
the service starts with no configuration at all.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from ledger.config import settings
    print(settings.DATABASE_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the Ledger API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Ledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Account store ---
    # Any SQLAlchemy async URL works; PostgreSQL needs the asyncpg driver
    DATABASE_URL: str = "sqlite+aiosqlite:///./ledger.db"

    # How many times a transfer is re-run after a write conflict before the
    # request fails with 500
    TRANSACTION_MAX_ATTEMPTS: int = 5

    # Number of account ids deleted per statement during reset
    RESET_BATCH_SIZE: int = 500

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Server (python -m ledger) ---
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    # Cost-control cap on in-flight requests; excess requests get 503
    MAX_CONCURRENT_REQUESTS: int = 10


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
