"""Contract tests for services that talk to HTTP endpoints or share parsers.

Mock the HTTP sessions, use real parsers and keyword construction.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
import requests

from docwatch.domains.diffing.core.types import DiffEvent, Keyword, Match, Token
from docwatch.domains.diffing.services.keyword_builder import KeywordBuilder
from docwatch.domains.monitoring.services.notifier import (
    STATUS_OK,
    STATUS_TIMEOUT,
    NotificationSender,
    build_payload,
)
from docwatch.domains.parsing.core.tokenizer import Parser, TokenizeOptions
from docwatch.domains.parsing.services.parser_pool import ParserPool
from docwatch.domains.reading.services.document_fetcher import DocumentFetcher
from docwatch.errors import (
    DocumentFetchError,
    ParserPoolExhaustedError,
    UnsupportedContentTypeError,
)

if TYPE_CHECKING:
    from docwatch.models.subscription import Subscription

DOC_URL = "https://docs.example.com/argus"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _response(
    status_code: int = 200,
    text: str = "",
    headers: dict[str, str] | None = None,
) -> MagicMock:
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text
    response.headers = headers if headers is not None else {}
    response.apparent_encoding = "utf-8"
    return response


def _fetcher(session: MagicMock, max_retries: int = 0) -> DocumentFetcher:
    return DocumentFetcher(
        timeout=5, max_retries=max_retries, min_wait=0, max_wait=0, session=session
    )


def _sender(session: MagicMock, max_retries: int = 0) -> NotificationSender:
    return NotificationSender(
        timeout=5, max_retries=max_retries, min_wait=0, max_wait=0, session=session
    )


def _match(keyword: str, event: DiffEvent, text: str, snippet: str = "") -> Match:
    return Match(
        keyword=Keyword(original_input=keyword, tokens=(Token(keyword, 0, len(keyword)),)),
        event=event,
        text=text,
        snippet=snippet,
    )


# ---------------------------------------------------------------------------
# ParserPool
# ---------------------------------------------------------------------------


class TestParserPool:
    """Tests for bounded parser lending."""

    def test_rejects_empty_pool(self) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            ParserPool(0)

    def test_acquire_and_release(self) -> None:
        pool = ParserPool(2)
        assert pool.available == 2
        with pool.acquire(timeout=1) as parser:
            assert isinstance(parser, Parser)
            assert pool.available == 1
        assert pool.available == 2

    def test_exhausted_pool_times_out(self) -> None:
        pool = ParserPool(1)
        with pool.acquire(timeout=1), pytest.raises(ParserPoolExhaustedError):
            with pool.acquire(timeout=0.01):
                pass

    def test_parser_returned_when_block_raises(self) -> None:
        pool = ParserPool(1)
        with pytest.raises(RuntimeError), pool.acquire(timeout=1):
            raise RuntimeError("tokenizer blew up")
        assert pool.available == 1

    def test_waiting_caller_gets_released_parser(self) -> None:
        pool = ParserPool(1)
        acquired = threading.Event()
        release = threading.Event()

        def hold() -> None:
            with pool.acquire(timeout=1):
                acquired.set()
                release.wait(timeout=5)

        holder = threading.Thread(target=hold)
        holder.start()
        acquired.wait(timeout=5)
        threading.Timer(0.05, release.set).start()

        with pool.acquire(timeout=5) as parser:
            assert isinstance(parser, Parser)
        holder.join()

    def test_close_rejects_later_acquires(self) -> None:
        pool = ParserPool(2)
        pool.close()
        assert pool.closed
        assert pool.available == 0
        with pytest.raises(ParserPoolExhaustedError, match="closed"):
            with pool.acquire(timeout=0):
                pass

    def test_uses_factory(self) -> None:
        factory = MagicMock(side_effect=Parser)
        ParserPool(3, factory=factory)
        assert factory.call_count == 3


# ---------------------------------------------------------------------------
# KeywordBuilder
# ---------------------------------------------------------------------------


class TestKeywordBuilder:
    """Tests for cached keyword construction."""

    def test_builds_in_input_order(self, plain_options: TokenizeOptions) -> None:
        builder = KeywordBuilder(ParserPool(1), acquire_timeout=1)
        keywords = builder.build(["Argus Panoptes", "  ", "Greek"], plain_options)
        assert [k.original_input for k in keywords] == ["Argus Panoptes", "Greek"]
        assert keywords[0].texts == ("argus", "panoptes")

    def test_reuses_cached_keywords(self, plain_options: TokenizeOptions) -> None:
        builder = KeywordBuilder(ParserPool(1), acquire_timeout=1)
        first = builder.build(["Greek"], plain_options)
        second = builder.build(["Greek"], plain_options)
        assert first[0] is second[0]

    def test_cache_is_keyed_by_options(
        self, plain_options: TokenizeOptions, full_options: TokenizeOptions
    ) -> None:
        builder = KeywordBuilder(ParserPool(1), acquire_timeout=1)
        [plain] = builder.build(["the giants"], plain_options)
        [full] = builder.build(["the giants"], full_options)
        assert plain.texts == ("the", "giants")
        assert full.texts == ("giant",)

    def test_held_parser_is_reused(self, plain_options: TokenizeOptions) -> None:
        pool = ParserPool(1)
        builder = KeywordBuilder(pool, acquire_timeout=0.01)
        with pool.acquire(timeout=1) as parser:
            [keyword] = builder.build(["Norse"], plain_options, parser=parser)
        assert keyword.texts == ("norse",)

    def test_clear_forgets_cache(self, plain_options: TokenizeOptions) -> None:
        builder = KeywordBuilder(ParserPool(1), acquire_timeout=1)
        [first] = builder.build(["Greek"], plain_options)
        builder.clear()
        [second] = builder.build(["Greek"], plain_options)
        assert first == second
        assert first is not second

    def test_discard_drops_every_option_variant(
        self, plain_options: TokenizeOptions, full_options: TokenizeOptions
    ) -> None:
        builder = KeywordBuilder(ParserPool(1), acquire_timeout=1)
        builder.build(["the giants", "Greek"], plain_options)
        builder.build(["the giants"], full_options)

        assert builder.discard(["the giants", "unknown"]) == 2
        assert len(builder) == 1
        assert builder.discard(["the giants"]) == 0

    def test_least_recently_used_entry_is_evicted(self, plain_options: TokenizeOptions) -> None:
        builder = KeywordBuilder(ParserPool(1), acquire_timeout=1, max_entries=2)
        [argus] = builder.build(["Argus"], plain_options)
        [greek] = builder.build(["Greek"], plain_options)
        builder.build(["Argus"], plain_options)
        builder.build(["Norse"], plain_options)

        assert len(builder) == 2
        assert builder.build(["Argus"], plain_options)[0] is argus
        assert builder.build(["Greek"], plain_options)[0] is not greek

    def test_rejects_empty_cache(self) -> None:
        with pytest.raises(ValueError, match="max_entries"):
            KeywordBuilder(ParserPool(1), max_entries=0)


# ---------------------------------------------------------------------------
# DocumentFetcher
# ---------------------------------------------------------------------------


class TestDocumentFetcher:
    """Tests for DocumentFetcher with a mocked HTTP session."""

    def test_fetch_plain_text(self) -> None:
        session = MagicMock()
        session.get.return_value = _response(
            text="The 100-eyed giant.",
            headers={
                "Content-Type": "text/plain; charset=utf-8",
                "Last-Modified": "Wed, 01 Jan 2025 12:00:00 GMT",
            },
        )
        snapshot = _fetcher(session).fetch(DOC_URL, "text/plain")

        assert snapshot.url == DOC_URL
        assert snapshot.content_type == "text/plain"
        assert snapshot.raw_text == "The 100-eyed giant."
        assert snapshot.http_last_modified is not None
        assert snapshot.http_last_modified.year == 2025
        session.get.assert_called_once_with(DOC_URL, timeout=5)

    def test_fetch_html_reads_visible_text(self) -> None:
        session = MagicMock()
        session.get.return_value = _response(
            text="<html><head><script>var x;</script></head>"
            "<body><p>Argus</p><p>Panoptes</p></body></html>",
            headers={"content-type": "text/html"},
        )
        snapshot = _fetcher(session).fetch(DOC_URL, "text/html")
        assert "Argus" in snapshot.raw_text
        assert "Panoptes" in snapshot.raw_text
        assert "var x" not in snapshot.raw_text

    def test_unsupported_type_never_requests(self) -> None:
        session = MagicMock()
        with pytest.raises(UnsupportedContentTypeError):
            _fetcher(session).fetch(DOC_URL, "image/png")
        session.get.assert_not_called()

    def test_client_error_raises(self) -> None:
        session = MagicMock()
        session.get.return_value = _response(status_code=404)
        with pytest.raises(DocumentFetchError) as exc_info:
            _fetcher(session).fetch(DOC_URL, "text/plain")
        assert exc_info.value.status_code == 404
        assert session.get.call_count == 1

    def test_server_error_is_retried(self) -> None:
        session = MagicMock()
        session.get.side_effect = [
            _response(status_code=503),
            _response(text="recovered", headers={"Content-Type": "text/plain"}),
        ]
        snapshot = _fetcher(session, max_retries=1).fetch(DOC_URL, "text/plain")
        assert snapshot.raw_text == "recovered"
        assert session.get.call_count == 2

    def test_server_error_after_retries_raises(self) -> None:
        session = MagicMock()
        session.get.return_value = _response(status_code=500)
        with pytest.raises(DocumentFetchError):
            _fetcher(session, max_retries=1).fetch(DOC_URL, "text/plain")
        assert session.get.call_count == 2

    def test_mismatched_content_type_still_read(self) -> None:
        session = MagicMock()
        session.get.return_value = _response(
            text="just text", headers={"Content-Type": "application/octet-stream"}
        )
        snapshot = _fetcher(session).fetch(DOC_URL, "text/plain")
        assert snapshot.raw_text == "just text"

    def test_is_readable(self) -> None:
        session = MagicMock()
        session.get.return_value = _response(text="ok", headers={})
        assert _fetcher(session).is_readable(DOC_URL, "text/plain")

    def test_is_readable_false_on_failures(self) -> None:
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")
        fetcher = _fetcher(session)
        assert not fetcher.is_readable(DOC_URL, "text/plain")
        assert not fetcher.is_readable(DOC_URL, "application/pdf")

    def test_sets_user_agent(self) -> None:
        session = requests.Session()
        DocumentFetcher(session=session)
        assert session.headers["User-Agent"] == DocumentFetcher.USER_AGENT
        session.close()

    def test_declared_charset_is_used_for_decoding(self) -> None:
        session = MagicMock()
        response = _response(
            text="Mythos", headers={"Content-Type": "text/plain; charset=ISO-8859-1"}
        )
        session.get.return_value = response
        _fetcher(session).fetch(DOC_URL, "text/plain")
        assert response.encoding == "iso-8859-1"

    def test_missing_charset_falls_back_to_detected_encoding(self) -> None:
        session = MagicMock()
        response = _response(text="Mythos", headers={"Content-Type": "text/plain"})
        response.apparent_encoding = "utf-8"
        session.get.return_value = response
        _fetcher(session).fetch(DOC_URL, "text/plain")
        assert response.encoding == "utf-8"


# ---------------------------------------------------------------------------
# NotificationSender
# ---------------------------------------------------------------------------


class TestBuildPayload:
    """Tests for notification bodies."""

    def test_ok_payload(self, subscription: Subscription) -> None:
        matches = {
            _match("the greek", DiffEvent.DELETED, "greek", "...in Greek myth"),
            _match("argus panoptes", DiffEvent.INSERTED, "argus panoptes", "Argus Panoptes is"),
        }
        payload = build_payload(subscription, STATUS_OK, matches)

        assert payload["status"] == "ok"
        assert payload["url"] == subscription.document_url
        assert payload["contentType"] == "text/plain"
        assert payload["token"] == "f" * 32
        assert payload["diffs"] == [
            {
                "keyword": "the greek",
                "event": "deleted",
                "text": "greek",
                "snippet": "...in Greek myth",
            },
            {
                "keyword": "argus panoptes",
                "event": "inserted",
                "text": "argus panoptes",
                "snippet": "Argus Panoptes is",
            },
        ]

    def test_timeout_payload_has_no_diffs(self, subscription: Subscription) -> None:
        payload = build_payload(subscription, STATUS_TIMEOUT)
        assert payload["status"] == "timeout"
        assert payload["diffs"] == []


class TestNotificationSender:
    """Tests for NotificationSender with a mocked HTTP session."""

    def test_notify_matches_posts_json(self, subscription: Subscription) -> None:
        session = MagicMock()
        session.post.return_value = _response()
        match = _match("the greek", DiffEvent.DELETED, "greek")

        assert _sender(session).notify_matches(subscription, [match])

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == subscription.client_url
        assert kwargs["json"]["status"] == "ok"
        assert kwargs["json"]["diffs"][0]["keyword"] == "the greek"
        assert kwargs["headers"] == {"Content-Type": "application/json"}

    def test_notify_timeout(self, subscription: Subscription) -> None:
        session = MagicMock()
        session.post.return_value = _response()
        assert _sender(session).notify_timeout(subscription)
        assert session.post.call_args.kwargs["json"]["status"] == "timeout"

    def test_http_error_returns_false(self, subscription: Subscription) -> None:
        session = MagicMock()
        response = _response(status_code=500)
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        session.post.return_value = response

        assert not _sender(session).notify_timeout(subscription)

    def test_connection_error_retried_then_false(self, subscription: Subscription) -> None:
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("refused")

        assert not _sender(session, max_retries=2).notify_timeout(subscription)
        assert session.post.call_count == 3
