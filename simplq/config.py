"""
Application configuration using Pydantic Settings.
Loads configuration from SIMPLQ_* environment variables with sensible defaults.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SIMPLQ_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    storage_backend: Literal["memory", "filesystem", "s3", "gcs"] = "memory"
    storage_path: Path = Path(".simplq")
    storage_prefix: str = "simplq"

    # S3 / S3-compatible (MinIO, R2, ...)
    s3_bucket: str | None = None
    s3_region: str | None = None
    s3_endpoint_url: str | None = None

    # Google Cloud Storage
    gcs_bucket: str | None = None

    # Token allocation
    lock_scope: Literal["global", "queue"] = "global"
    max_retries: int = Field(default=10, ge=1)

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
