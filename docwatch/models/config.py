"""Application configuration model using pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docwatch.domains.parsing.core.tokenizer import TokenizeOptions


class Config(BaseSettings):
    """Application configuration loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    database_path: str = "data/docwatch.db"
    log_level: str = "INFO"
    max_retry_attempts: int = 2
    parser_pool_size: int = 4
    parser_acquire_timeout: float = 30.0
    worker_count: int = 4
    default_snippet_radius: int = 50
    default_interval_seconds: int = 600
    fault_tolerance: int = 10
    request_timeout: float = 30.0
    detection_ignore_case: bool = True
    detection_filter_stopwords: bool = False
    detection_enable_stemming: bool = False
    language_hint: str | None = None

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, value: str) -> str:
        """Ensure parent directory exists, creating it if necessary."""
        if value == ":memory:":
            return value
        parent = Path(value).parent
        parent.mkdir(parents=True, exist_ok=True)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value

    @field_validator("max_retry_attempts")
    @classmethod
    def validate_max_retry_attempts(cls, value: int) -> int:
        """Max retry attempts must be between 0 and 5."""
        if value < 0 or value > 5:
            msg = "max_retry_attempts must be between 0 and 5"
            raise ValueError(msg)
        return value

    @field_validator("parser_pool_size", "worker_count")
    @classmethod
    def validate_pool_sizes(cls, value: int) -> int:
        """Pool sizes must be between 1 and 64."""
        if value < 1 or value > 64:
            msg = "pool sizes must be between 1 and 64"
            raise ValueError(msg)
        return value

    @field_validator("parser_acquire_timeout", "request_timeout")
    @classmethod
    def validate_timeouts(cls, value: float) -> float:
        """Timeouts must be positive."""
        if value <= 0:
            msg = "timeouts must be greater than 0"
            raise ValueError(msg)
        return value

    @field_validator("default_snippet_radius")
    @classmethod
    def validate_default_snippet_radius(cls, value: int) -> int:
        """Snippet radius must be between 0 and 1000."""
        if value < 0 or value > 1000:
            msg = "default_snippet_radius must be between 0 and 1000"
            raise ValueError(msg)
        return value

    @field_validator("default_interval_seconds", "fault_tolerance")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Intervals and fault tolerance must be at least 1."""
        if value < 1:
            msg = "value must be >= 1"
            raise ValueError(msg)
        return value

    @property
    def detection_options(self) -> TokenizeOptions:
        """Normalization used to tokenize snapshots for difference detection."""
        return TokenizeOptions(
            ignore_case=self.detection_ignore_case,
            filter_stopwords=self.detection_filter_stopwords,
            enable_stemming=self.detection_enable_stemming,
            language_hint=self.language_hint,
        )
