"""Application configuration via pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash-lite"
    gemini_timeout_ms: int = 60_000
    max_prompt_chars: int = 30_000

    # Job queue
    worker_concurrency: int = 4
    queue_max_attempts: int = 3
    queue_backoff_base_seconds: float = 2.0
    # Drop jobs on the first non-retryable error instead of using every attempt
    queue_fail_fast: bool = False
    queue_visibility_timeout_seconds: float = 180.0
    queue_reaper_interval_seconds: float = 5.0
    job_timeout_seconds: float = 120.0

    # Extraction
    webpage_timeout_seconds: float = 10.0
    webpage_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
    max_file_bytes: int = 20 * 1024 * 1024
    youtube_proxy_url: str = ""
    transcript_languages: list[str] = ["en"]

    # App
    environment: str = "development"
    log_level: str = "INFO"
    log_json: bool = True
    port: int = 8080


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings. Lazy initialization to avoid import-time errors."""
    return Settings()
