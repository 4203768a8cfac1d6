"""Bridge configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Bridge settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CIVICRM_ENTITY_",
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # Timezones: content values are stored in STORAGE_TIMEZONE, the CRM API
    # expects date/time params in DISPLAY_TIMEZONE.
    DISPLAY_TIMEZONE: str = "UTC"
    STORAGE_TIMEZONE: str = "UTC"

    # Schema building: skip CRM fields with an unknown type instead of failing
    SKIP_UNTRANSLATABLE_FIELDS: bool = True


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
