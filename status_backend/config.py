"""
Configuration and settings for the status tracker backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (any SQLAlchemy URL, e.g. sqlite:///status.db)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias="STATUS_USE_IN_MEMORY_BACKENDS",
    )
    seed_demo_data: bool = Field(default=True)

    # Single frontend origin allowed to call the API
    cors_origin: str = Field(default="https://leewaller93.github.io")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
