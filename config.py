"""
Application configuration settings.

Settings are read from environment variables, falling back to a local .env
file when present.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        DATABASE_PATH: Path of the sqlite database file holding the Contact table
        IMMEDIATE_TRANSACTIONS: Take the write lock when an identify call starts
            instead of on its first write
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_PATH: str = "contacts.db"
    IMMEDIATE_TRANSACTIONS: bool = False

    APP_NAME: str = "Bitespeed Contact Reconciliation API"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"


settings = Settings()
