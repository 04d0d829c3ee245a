"""
Configuration and settings for the portfolio backend.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_STATIC_DIR = Path(__file__).resolve().parent / "public"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Any SQLAlchemy URL: a local SQLite file or a remote hosted database.
    database_url: str = Field(default="sqlite:///portfolio.db")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="LINKBIO_USE_IN_MEMORY_BACKENDS"
    )

    # Front-end bundle
    static_dir: str = Field(
        default=str(DEFAULT_STATIC_DIR), validation_alias="LINKBIO_STATIC_DIR"
    )
    cors_origins: list[str] = Field(
        default=["*"], validation_alias="LINKBIO_CORS_ORIGINS"
    )

    # HTTP server
    host: str = Field(default="127.0.0.1", validation_alias="LINKBIO_HOST")
    port: int = Field(default=3000)
    log_level: str = Field(default="INFO", validation_alias="LINKBIO_LOG_LEVEL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
