"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env
file as a fallback. The .env file is gitignored; .env.example is the template.

Priority (highest first):
  1. Environment variables
  2. .env file values
  3. Defaults defined here

Usage:
    from finledger.config import settings
    print(settings.DATABASE_URL)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the ledger service.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign JWT tokens
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "Finledger API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # --- Database ---
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/finledger.db"

    # --- Authentication ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    # False switches to plain-text lines
    LOG_JSON: bool = True

    # --- Ledger defaults ---
    # ISO 4217 code given to new projects and accounts when none is supplied
    DEFAULT_CURRENCY: str = "USD"
    # Upper bound on installments for card purchases and credits
    MAX_INSTALLMENTS: int = 60

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
