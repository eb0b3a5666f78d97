"""Application configuration via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Frozen: components receive this object at construction and it never
    changes for the lifetime of the process.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
    )

    # Notion
    notion_api_key: str = ""
    notion_base_url: str = "https://api.notion.com"
    notion_version: str = "2022-06-28"
    notion_database_id: str = ""

    # Database schema
    published_property: str = "is_published"
    published_at_property: str = "published_at"
    synchronized_property: str = "is_synced"
    filter_unsynchronized: bool = True

    # Images
    image_base_url: str = ""
    convert_to_webp_formats: list[str] = ["png", "jpeg", "bmp", "tiff"]
    webp_quality: int = 80
    image_retry_attempts: int = 3
    image_download_timeout_seconds: float = 30.0

    # Rate limit (uniform spacing: one request every period / requests seconds)
    rate_limit_requests: int = 3
    rate_limit_period_seconds: float = 1.0

    # Failure policy
    strict_image_failures: bool = False
    strict_deletes: bool = True

    # Blob storage
    blob_backend: Literal["s3", "local"] = "s3"
    s3_bucket: str = ""
    s3_region: str = "us-east-1"
    s3_endpoint_url: str = ""
    s3_key_prefix: str = ""
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    local_blob_dir: str = "public"

    # Scheduler
    scheduler_secret: str = ""
    sync_interval_seconds: int = 0

    # App
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 8080


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings. Lazy initialization to avoid import-time errors."""
    return Settings()
