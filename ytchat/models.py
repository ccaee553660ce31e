"""Settings model for ytchat."""

import logging

from pydantic import BaseModel, Field, field_validator


class Config(BaseModel):
    """Configuration model."""

    # Stream URL or watch URL; empty means "not configured"
    chat_url: str = ""

    # Polling settings
    poll_interval_sec: float = Field(default=30.0, gt=0)
    connect_timeout_sec: float = Field(default=10.0, gt=0)
    request_timeout_sec: float = Field(default=15.0, gt=0)

    # Error throttle settings
    error_window_sec: float = Field(default=10.0, ge=0)
    error_backoff_factor: float = Field(default=1.0, ge=1.0)
    max_error_window_sec: float = Field(default=300.0, ge=0)

    # Consumer retention
    feed_max_entries: int = Field(default=30, gt=0)
    feed_batch_size: int = Field(default=25, gt=0)

    log_level: str = "INFO"

    @field_validator("chat_url", mode="before")
    @classmethod
    def _strip_url(cls, value):
        return "" if value is None else str(value).strip()

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level
