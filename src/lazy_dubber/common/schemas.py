"""Shared Pydantic schemas for the subtitle translation pipeline."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from lazy_dubber.common.config import Settings, settings as default_settings
from lazy_dubber.common.utils import DateTimeUtils


class CacheEntry(BaseModel):
    """Persisted translation map for one subtitle file."""

    translations: Dict[int, str] = Field(
        ..., description="Mapping of cue index to translated text"
    )
    timestamp: int = Field(
        default_factory=DateTimeUtils.get_current_timestamp_ms,
        description="When the entry was written (epoch milliseconds)",
    )
    version: str = Field(..., description="Cache format version")
    count: int = Field(..., ge=0, description="Number of translated cues")

    class Config:
        json_schema_extra = {
            "example": {
                "translations": {"0": "Привет", "1": "Мир"},
                "timestamp": 1735689600000,
                "version": "v1",
                "count": 2,
            }
        }


class BatchError(BaseModel):
    """One failed attempt at translating a batch."""

    batch_index: int = Field(..., ge=0, description="Index of the failed batch")
    message: str = Field(..., description="Error description")
    timestamp: int = Field(
        default_factory=DateTimeUtils.get_current_timestamp_ms,
        description="When the failure happened (epoch milliseconds)",
    )


class TranslationStatus(BaseModel):
    """Snapshot of the scheduler's job queue state."""

    is_processing: bool = Field(default=False)
    is_paused: bool = Field(default=False)
    progress: int = Field(default=0, ge=0, le=100, description="Percent complete")
    current_batch: int = Field(default=0, ge=0)
    total_batches: int = Field(default=0, ge=0)
    errors: List[BatchError] = Field(default_factory=list)


class ClientConfig(BaseModel):
    """Settings for the remote translation client."""

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "gemini-2.5-flash"
    max_tokens: int = Field(default=8192, gt=0)
    temperature: float = 0.3
    top_p: float = 0.8
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0)
    max_batch_size: int = Field(default=25, ge=1)
    chunk_delay: float = Field(default=0.5, ge=0)
    source_language: str = "en"
    target_language: str = "ru"

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "ClientConfig":
        config = config or default_settings
        return cls(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            model=config.openai_model,
            max_tokens=config.openai_max_tokens,
            temperature=config.openai_temperature,
            top_p=config.openai_top_p,
            timeout=config.translation_request_timeout,
            max_retries=config.translation_request_max_retries,
            retry_delay=config.translation_request_retry_delay,
            max_batch_size=config.translation_max_batch_size,
            chunk_delay=config.translation_chunk_delay,
            source_language=config.translation_source_language,
            target_language=config.translation_target_language,
        )


class SchedulerConfig(BaseModel):
    """Settings for the translation scheduler."""

    batch_size: int = Field(default=50, ge=1)
    batch_delay: float = Field(default=0.5, ge=0)
    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=2.0, ge=0)
    initial_window_minutes: float = Field(default=10, ge=0)

    @property
    def initial_window_seconds(self) -> float:
        return self.initial_window_minutes * 60

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "SchedulerConfig":
        config = config or default_settings
        return cls(
            batch_size=config.scheduler_batch_size,
            batch_delay=config.scheduler_batch_delay,
            max_retries=config.scheduler_max_retries,
            retry_delay=config.scheduler_retry_delay,
            initial_window_minutes=config.scheduler_initial_window_minutes,
        )


class CacheConfig(BaseModel):
    """Settings for the persistent translation cache."""

    key_prefix: str = "translation_"
    version: str = "v1"
    expire_days: int = Field(default=30, ge=0)

    @property
    def expiry_window_ms(self) -> int:
        return DateTimeUtils.days_to_milliseconds(self.expire_days)

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "CacheConfig":
        config = config or default_settings
        return cls(
            key_prefix=config.cache_key_prefix,
            version=config.cache_version,
            expire_days=config.cache_expire_days,
        )
