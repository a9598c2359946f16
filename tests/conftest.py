"""Shared test fixtures for docwatch."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from docwatch.domains.parsing.core.tokenizer import Parser, TokenizeOptions
from docwatch.models.snapshot import Snapshot
from docwatch.models.subscription import Subscription
from docwatch.services.database import Database

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

OLD_TEXT = "is the of the 100-eyed giant in Greek mythology."
NEW_TEXT = "Argus Panoptes is the name of the 100-eyed giant in Norse mythology."
DOCUMENT_URL = "https://docs.example.com/argus"
CLIENT_URL = "https://client.example.com/hook"


@pytest.fixture
def tmp_db_path(tmp_path: Path) -> str:
    """Provide a temporary database file path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def db(tmp_db_path: str) -> Iterator[Database]:
    """Provide an initialized temporary database."""
    database = Database(db_path=tmp_db_path)
    database.init_db()
    yield database
    database.close()


@pytest.fixture
def parser() -> Parser:
    return Parser()


@pytest.fixture
def plain_options() -> TokenizeOptions:
    """Case folding only, English, no stopwords or stemming."""
    return TokenizeOptions(ignore_case=True, language_hint="en")


@pytest.fixture
def full_options() -> TokenizeOptions:
    """Case folding, English stopwords and stemming."""
    return TokenizeOptions(
        ignore_case=True,
        filter_stopwords=True,
        enable_stemming=True,
        language_hint="en",
    )


@pytest.fixture
def make_snapshot() -> Callable[..., Snapshot]:
    """Build snapshots of one document, each a minute after the previous one."""
    base = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
    counter = {"n": 0}

    def factory(raw_text: str, **overrides: Any) -> Snapshot:
        counter["n"] += 1
        data: dict[str, Any] = {
            "url": DOCUMENT_URL,
            "content_type": "text/plain",
            "raw_text": raw_text,
            "fetched_at": base + timedelta(minutes=counter["n"]),
        }
        data.update(overrides)
        return Snapshot(**data)

    return factory


@pytest.fixture
def sample_subscription_data() -> dict[str, Any]:
    """Sample subscription fields for testing."""
    return {
        "document_url": DOCUMENT_URL,
        "document_content_type": "text/plain",
        "client_url": CLIENT_URL,
        "keywords": ["argus panoptes", "the greek"],
        "filter_stopwords": True,
        "enable_stemming": True,
        "snippet_radius": 20,
        "interval_seconds": 60,
        "token": "f" * 32,
    }


@pytest.fixture
def subscription(sample_subscription_data: dict[str, Any]) -> Subscription:
    return Subscription(**sample_subscription_data)
