"""Application configuration using pydantic-settings pattern."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Journal Pipeline"
    app_version: str = "0.1.0"
    app_env: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Database (Turso) for interactions, views and answer records
    turso_database_url: str | None = Field(default=None)
    turso_auth_token: str | None = Field(default=None)

    # Transcription queue backend
    queue_enabled: bool = Field(default=True)
    queue_database_url: str | None = Field(
        default=None,
        description="Queue database URL; falls back to turso_database_url",
    )
    queue_attempts: int = Field(default=3, ge=1)
    queue_backoff_ms: int = Field(default=2000, ge=0)
    queue_keep_completed: int = Field(default=10, ge=0)
    queue_keep_failed: int = Field(default=5, ge=0)

    # Transcription worker
    worker_concurrency: int = Field(default=2, ge=1)
    worker_poll_interval_seconds: float = Field(default=1.0, gt=0)
    worker_lease_ms: int = Field(default=120_000, gt=0)
    worker_stalled_check_seconds: int = Field(default=30, gt=0)

    # Speech-to-text provider (OpenAI-compatible)
    stt_api_key: str | None = Field(default=None)
    stt_base_url: str = Field(default="https://api.openai.com/v1")
    stt_model: str = Field(default="whisper-1")
    provider_timeout_seconds: float = Field(default=60.0, gt=0)

    # Downstream answer record callback
    callback_base_url: str = Field(default="http://localhost:3080")
    callback_timeout_seconds: float = Field(default=30.0, gt=0)
    uploads_dir: str = Field(default=".")

    # View materialization
    local_timezone: str | None = Field(
        default=None,
        description="IANA zone for daily buckets; host zone when unset",
    )
    stream_batch_size: int = Field(default=100, ge=1)
    stream_poll_interval_seconds: float = Field(default=1.0, gt=0)
    stream_max_backoff_seconds: float = Field(default=30.0, gt=0)
    stream_max_event_failures: int = Field(
        default=5, ge=1, description="Attempts before an interaction is skipped"
    )

    # Activity tracking
    activity_ttl_seconds: int = Field(default=30 * 60, gt=0)
    activity_cache_size: int = Field(default=10_000, ge=1)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
