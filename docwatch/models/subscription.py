"""Subscription model: a client's interest in keyword changes of a document."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator

from docwatch.domains.diffing.core.types import DiffEvent
from docwatch.domains.parsing.core.tokenizer import TokenizeOptions
from docwatch.utils.validators import is_valid_url

DEFAULT_EVENTS = (DiffEvent.INSERTED, DiffEvent.DELETED)


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class Subscription(BaseModel):
    """Keywords a client wants to be notified about for one document."""

    id: int | None = None
    document_url: str
    document_content_type: str
    client_url: str
    client_content_type: str = "application/json"
    keywords: list[str]
    events: list[DiffEvent] = Field(default_factory=lambda: list(DEFAULT_EVENTS))
    filter_stopwords: bool = False
    enable_stemming: bool = False
    ignore_case: bool = True
    snippet_radius: int = 50
    interval_seconds: int = 600
    token: str = ""
    created_at: datetime = Field(default_factory=_utc_now)

    @field_validator("document_url", "client_url")
    @classmethod
    def validate_urls(cls, value: str) -> str:
        """URLs must be absolute http(s)."""
        if not is_valid_url(value):
            msg = "URL must be an absolute http or https URL"
            raise ValueError(msg)
        return value

    @field_validator("document_content_type", "client_content_type")
    @classmethod
    def validate_content_types(cls, value: str) -> str:
        """Content types must be non-empty."""
        if not value.strip():
            msg = "content type must not be empty"
            raise ValueError(msg)
        return value.strip().lower()

    @field_validator("keywords")
    @classmethod
    def validate_keywords(cls, value: list[str]) -> list[str]:
        """At least one non-blank keyword; blank entries are dropped."""
        keywords = [keyword.strip() for keyword in value if keyword.strip()]
        if not keywords:
            msg = "keywords must contain at least one non-blank phrase"
            raise ValueError(msg)
        return keywords

    @field_validator("events")
    @classmethod
    def validate_events(cls, value: list[DiffEvent]) -> list[DiffEvent]:
        """Only inserted and deleted are watchable, and at least one is required."""
        events = list(dict.fromkeys(value))
        if DiffEvent.UNCHANGED in events:
            msg = "events may only contain inserted and deleted"
            raise ValueError(msg)
        if not events:
            msg = "events must contain inserted, deleted or both"
            raise ValueError(msg)
        return events

    @field_validator("snippet_radius")
    @classmethod
    def validate_snippet_radius(cls, value: int) -> int:
        """Snippet radius must be between 0 and 1000."""
        if value < 0 or value > 1000:
            msg = "snippet_radius must be between 0 and 1000"
            raise ValueError(msg)
        return value

    @field_validator("interval_seconds")
    @classmethod
    def validate_interval_seconds(cls, value: int) -> int:
        """Interval must be at least one second."""
        if value < 1:
            msg = "interval_seconds must be >= 1"
            raise ValueError(msg)
        return value

    @property
    def document_key(self) -> tuple[str, str]:
        return (self.document_url, self.document_content_type)

    @property
    def ignore_inserted(self) -> bool:
        return DiffEvent.INSERTED not in self.events

    @property
    def ignore_deleted(self) -> bool:
        return DiffEvent.DELETED not in self.events

    def tokenize_options(self, language_hint: str | None = None) -> TokenizeOptions:
        """Normalization used for this subscription's keywords and spans."""
        return TokenizeOptions(
            ignore_case=self.ignore_case,
            filter_stopwords=self.filter_stopwords,
            enable_stemming=self.enable_stemming,
            language_hint=language_hint,
        )
