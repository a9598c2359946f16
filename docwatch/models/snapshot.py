"""Snapshot model for fetched document content."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from docwatch.domains.reading.core.checksum import compute_content_checksum
from docwatch.utils.validators import is_valid_md5, is_valid_url

MAX_TEXT_LENGTH = 10_000_000


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class Snapshot(BaseModel):
    """The reader text of one document captured at one point in time."""

    model_config = ConfigDict(strict=True, frozen=True)

    id: int | None = None
    url: str
    content_type: str
    raw_text: str
    content_checksum: str
    fetched_at: datetime = Field(default_factory=_utc_now)
    http_last_modified: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def fill_content_checksum(cls, data: Any) -> Any:
        """Compute the checksum from raw_text when it was not supplied."""
        if isinstance(data, dict) and data.get("content_checksum") is None:
            raw_text = data.get("raw_text")
            if isinstance(raw_text, str):
                data = {**data, "content_checksum": compute_content_checksum(raw_text)}
        return data

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        """URL must be absolute http(s)."""
        if not is_valid_url(value):
            msg = "url must be an absolute http or https URL"
            raise ValueError(msg)
        return value

    @field_validator("content_type")
    @classmethod
    def validate_content_type(cls, value: str) -> str:
        """Content type must be non-empty."""
        if not value.strip():
            msg = "content_type must not be empty"
            raise ValueError(msg)
        return value.strip().lower()

    @field_validator("raw_text")
    @classmethod
    def validate_raw_text(cls, value: str) -> str:
        """Raw text must not exceed 10MB."""
        if len(value) > MAX_TEXT_LENGTH:
            msg = "raw_text must not exceed 10,000,000 characters"
            raise ValueError(msg)
        return value

    @field_validator("content_checksum")
    @classmethod
    def validate_content_checksum(cls, value: str) -> str:
        """Content checksum must be a valid 32-character lowercase hex MD5 string."""
        lowered = value.lower()
        if not is_valid_md5(lowered):
            msg = "content_checksum must be a valid 32-character hex MD5 string"
            raise ValueError(msg)
        return lowered

    @field_validator("fetched_at")
    @classmethod
    def validate_fetched_at(cls, value: datetime) -> datetime:
        """Fetched timestamp must be timezone-aware and not in the future."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        if value > datetime.now(UTC):
            msg = "fetched_at must not be in the future"
            raise ValueError(msg)
        return value

    @property
    def document_key(self) -> tuple[str, str]:
        return (self.url, self.content_type)
