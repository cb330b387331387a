"""
Configuration and settings for the MovieMap API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database (Postgres expected; any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None)
    store_timeout_seconds: float = Field(default=10.0, gt=0)
    store_retry_attempts: int = Field(default=3, ge=1)

    # Firebase Authentication
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_service_account_path: Optional[str] = Field(default=None)
    firebase_service_account_json: Optional[str] = Field(default=None)
    firebase_check_revoked: bool = Field(default=False)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "MOVIEMAP_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )
    # Only honoured when use_in_memory_backends is set explicitly.
    dev_moderator_token: str = Field(default="test-token-moderator")
    dev_moderator_uid: str = Field(default="test-moderator")
    seed_sample_data: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
