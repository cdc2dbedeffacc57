# barbershop/config.py
"""
Configuration module - central access point for environment variables.

Read settings through get_settings(); do not call os.getenv() in application code.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./barber.db",
        description="SQLAlchemy connection string",
    )
    SQL_ECHO: bool = Field(default=False)
    SQLITE_BUSY_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="How long a SQLite writer waits for the write lock before giving up",
    )

    # Auth
    SECRET_KEY: str = Field(default="change-me-later")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)

    # Shop
    TIMEZONE: str = Field(
        default="America/New_York",
        description="Single operating zone; all booking dates and times are wall-clock in this zone",
    )
    SLOT_STEP_MINUTES: int = Field(default=30, gt=0)
    SEED_DEFAULT_CATALOG: bool = Field(
        default=False,
        description="Seed default services and a provider on startup when the catalog is empty",
    )

    ADMIN_EMAIL: str = Field(default="", description="Admin account provisioned on startup when set")
    ADMIN_PASSWORD: str = Field(default="")

    LOG_LEVEL: str = Field(default="INFO")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
