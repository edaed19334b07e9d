"""Configuration management for the subtitle translation pipeline."""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# .env lives in the project root, above src/lazy_dubber/common/
_PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Redis Configuration (persistent translation cache)
    redis_url: str = Field(default="redis://localhost:6379", env="REDIS_URL")
    redis_reconnect_max_retries: int = Field(
        default=3, env="REDIS_RECONNECT_MAX_RETRIES"
    )
    redis_reconnect_initial_delay: float = Field(
        default=1.0, env="REDIS_RECONNECT_INITIAL_DELAY"
    )
    redis_reconnect_max_delay: float = Field(
        default=10.0, env="REDIS_RECONNECT_MAX_DELAY"
    )

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_file_enabled: bool = Field(default=False, env="LOG_FILE_ENABLED")

    # Remote translation model (any OpenAI-compatible chat completions endpoint)
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_base_url: Optional[str] = Field(default=None, env="OPENAI_BASE_URL")
    openai_model: str = Field(default="gemini-2.5-flash", env="OPENAI_MODEL")
    openai_max_tokens: int = Field(default=8192, env="OPENAI_MAX_TOKENS")
    openai_temperature: float = Field(
        default=0.3, env="OPENAI_TEMPERATURE"
    )  # Lower for consistent translations
    openai_top_p: float = Field(default=0.8, env="OPENAI_TOP_P")

    # Remote request behaviour
    translation_request_timeout: float = Field(
        default=30.0, env="TRANSLATION_REQUEST_TIMEOUT"
    )  # Seconds per HTTP request
    translation_request_max_retries: int = Field(
        default=3, env="TRANSLATION_REQUEST_MAX_RETRIES"
    )  # Retries after the initial attempt
    translation_request_retry_delay: float = Field(
        default=1.0, env="TRANSLATION_REQUEST_RETRY_DELAY"
    )  # Base delay, multiplied by the attempt number
    translation_max_batch_size: int = Field(
        default=25, env="TRANSLATION_MAX_BATCH_SIZE"
    )  # Maximum texts per remote request
    translation_chunk_delay: float = Field(
        default=0.5, env="TRANSLATION_CHUNK_DELAY"
    )  # Pause between sub-batch requests

    # Language pair (fixed at build time)
    translation_source_language: str = Field(
        default="en", env="TRANSLATION_SOURCE_LANGUAGE"
    )
    translation_target_language: str = Field(
        default="ru", env="TRANSLATION_TARGET_LANGUAGE"
    )

    # Scheduler
    scheduler_batch_size: int = Field(default=50, env="SCHEDULER_BATCH_SIZE")
    scheduler_batch_delay: float = Field(default=0.5, env="SCHEDULER_BATCH_DELAY")
    scheduler_max_retries: int = Field(default=3, env="SCHEDULER_MAX_RETRIES")
    scheduler_retry_delay: float = Field(default=2.0, env="SCHEDULER_RETRY_DELAY")
    scheduler_initial_window_minutes: float = Field(
        default=10, env="SCHEDULER_INITIAL_WINDOW_MINUTES"
    )  # Media time translated before control returns to the caller

    # Translation cache
    cache_key_prefix: str = Field(default="translation_", env="CACHE_KEY_PREFIX")
    cache_version: str = Field(default="v1", env="CACHE_VERSION")
    cache_expire_days: int = Field(default=30, env="CACHE_EXPIRE_DAYS")

    @field_validator(
        "scheduler_batch_size", "translation_max_batch_size", mode="after"
    )
    @classmethod
    def validate_positive_batch_size(cls, v: int) -> int:
        """
        Reject batch sizes that would make partitioning impossible.

        Args:
            v: Configured batch size

        Returns:
            The batch size unchanged

        Raises:
            ValueError: If the batch size is lower than 1
        """
        if v < 1:
            raise ValueError(f"batch size must be at least 1, got {v}")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the configured log level name."""
        return v.upper() if isinstance(v, str) else v

    class Config:
        env_file = str(_PROJECT_ROOT / ".env")
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
