"""Unit tests for utility modules.

Tests cover: validators, progress, retry, logger.
"""

from __future__ import annotations

import pytest
import requests
import structlog

from docwatch.utils.logger import configure_logging, get_logger
from docwatch.utils.progress import ProgressTracker
from docwatch.utils.retry import retry_with_logging
from docwatch.utils.validators import is_valid_md5, is_valid_url

# ──────────────────────────────────────────────────────────────────────
# Module 1: utils/validators.py
# ──────────────────────────────────────────────────────────────────────


class TestIsValidUrl:
    """Tests for is_valid_url."""

    def test_https(self) -> None:
        assert is_valid_url("https://example.com") is True

    def test_http_with_path(self) -> None:
        assert is_valid_url("http://example.com/docs/page.html") is True

    def test_with_port(self) -> None:
        assert is_valid_url("http://localhost:8080/hook") is True

    def test_ftp_scheme_fails(self) -> None:
        assert is_valid_url("ftp://example.com") is False

    def test_missing_scheme(self) -> None:
        assert is_valid_url("example.com") is False

    def test_empty_string(self) -> None:
        assert is_valid_url("") is False


class TestIsValidMd5:
    """Tests for is_valid_md5."""

    def test_valid_md5(self) -> None:
        assert is_valid_md5("d41d8cd98f00b204e9800998ecf8427e") is True

    def test_uppercase_fails(self) -> None:
        assert is_valid_md5("D41D8CD98F00B204E9800998ECF8427E") is False

    def test_too_short(self) -> None:
        assert is_valid_md5("abc") is False

    def test_non_hex_chars(self) -> None:
        assert is_valid_md5("g" * 32) is False


# ──────────────────────────────────────────────────────────────────────
# Module 2: utils/progress.py
# ──────────────────────────────────────────────────────────────────────


class TestProgressTracker:
    """Tests for ProgressTracker."""

    def test_initial_state(self) -> None:
        tracker = ProgressTracker(total=10)
        assert tracker.total == 10
        assert tracker.processed == 0
        assert tracker.successful == 0
        assert tracker.failed == 0
        assert tracker.skipped == 0
        assert tracker.errors == []

    def test_record_success(self) -> None:
        tracker = ProgressTracker(total=5)
        tracker.record_success()
        assert tracker.processed == 1
        assert tracker.successful == 1

    def test_record_failure(self) -> None:
        tracker = ProgressTracker(total=5)
        tracker.record_failure("something broke")
        assert tracker.processed == 1
        assert tracker.failed == 1
        assert tracker.errors == ["something broke"]

    def test_record_skip(self) -> None:
        tracker = ProgressTracker(total=5)
        tracker.record_skip()
        assert tracker.processed == 1
        assert tracker.skipped == 1

    def test_progress_percentage_zero_total(self) -> None:
        tracker = ProgressTracker(total=0)
        assert tracker.progress_percentage == 100.0

    def test_progress_percentage_half(self) -> None:
        tracker = ProgressTracker(total=10)
        for _ in range(5):
            tracker.record_success()
        assert tracker.progress_percentage == pytest.approx(50.0)

    def test_progress_percentage_complete(self) -> None:
        tracker = ProgressTracker(total=3)
        tracker.record_success()
        tracker.record_failure("err")
        tracker.record_skip()
        assert tracker.progress_percentage == pytest.approx(100.0)

    def test_elapsed_seconds(self) -> None:
        tracker = ProgressTracker(total=1)
        # Just confirm it returns a non-negative float
        assert tracker.elapsed_seconds >= 0.0

    def test_summary(self) -> None:
        tracker = ProgressTracker(total=3)
        tracker.record_success()
        tracker.record_failure("err1")
        tracker.record_skip()
        summary = tracker.summary()
        assert summary["processed"] == 3
        assert summary["successful"] == 1
        assert summary["failed"] == 1
        assert summary["skipped"] == 1
        assert summary["errors"] == ["err1"]
        assert isinstance(summary["duration_seconds"], float)

    def test_multiple_errors_accumulated(self) -> None:
        tracker = ProgressTracker(total=3)
        tracker.record_failure("err1")
        tracker.record_failure("err2")
        tracker.record_failure("err3")
        assert len(tracker.errors) == 3
        assert tracker.errors == ["err1", "err2", "err3"]

    def test_all_success(self) -> None:
        tracker = ProgressTracker(total=5)
        for _ in range(5):
            tracker.record_success()
        assert tracker.processed == 5
        assert tracker.successful == 5
        assert tracker.failed == 0
        assert tracker.skipped == 0
        assert tracker.progress_percentage == pytest.approx(100.0)

    def test_mixed_results(self) -> None:
        tracker = ProgressTracker(total=10)
        for _ in range(6):
            tracker.record_success()
        for i in range(3):
            tracker.record_failure(f"err_{i}")
        tracker.record_skip()
        assert tracker.processed == 10
        assert tracker.successful == 6
        assert tracker.failed == 3
        assert tracker.skipped == 1
        assert len(tracker.errors) == 3

    def test_notifications_counted(self) -> None:
        tracker = ProgressTracker(total=2)
        tracker.record_success(notifications=3)
        tracker.record_success()
        assert tracker.notifications == 3
        assert tracker.summary()["notifications"] == 3


# ──────────────────────────────────────────────────────────────────────
# Module 3: utils/retry.py
# ──────────────────────────────────────────────────────────────────────


class TestRetryWithLogging:
    """Tests for retry_with_logging."""

    def test_returns_on_success(self) -> None:
        calls: list[int] = []

        @retry_with_logging(max_attempts=3, min_wait=0, max_wait=0)
        def succeed() -> str:
            calls.append(1)
            return "ok"

        assert succeed() == "ok"
        assert len(calls) == 1

    def test_retries_connection_errors(self) -> None:
        calls: list[int] = []

        @retry_with_logging(max_attempts=3, min_wait=0, max_wait=0)
        def flaky() -> str:
            calls.append(1)
            if len(calls) < 3:
                raise requests.ConnectionError("refused")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_reraises_after_last_attempt(self) -> None:
        calls: list[int] = []

        @retry_with_logging(max_attempts=2, min_wait=0, max_wait=0)
        def broken() -> None:
            calls.append(1)
            raise TimeoutError("slow")

        with pytest.raises(TimeoutError, match="slow"):
            broken()
        assert len(calls) == 2

    def test_other_errors_not_retried(self) -> None:
        calls: list[int] = []

        @retry_with_logging(max_attempts=3, min_wait=0, max_wait=0)
        def invalid() -> None:
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            invalid()
        assert len(calls) == 1

    def test_preserves_function_name(self) -> None:
        @retry_with_logging()
        def named() -> None:
            return None

        assert named.__name__ == "named"


# ──────────────────────────────────────────────────────────────────────
# Module 4: utils/logger.py
# ──────────────────────────────────────────────────────────────────────


class TestLogger:
    """Tests for configure_logging and get_logger."""

    def test_filters_below_level(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("WARNING")
        logger = get_logger("docwatch.test")
        logger.info("hidden_event")
        logger.warning("visible_event", url="https://example.com")
        err = capsys.readouterr().err
        assert "hidden_event" not in err
        assert "visible_event" in err
        assert "url=https://example.com" in err

    def test_unknown_level_falls_back_to_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("NOPE")
        get_logger("docwatch.test").info("info_event")
        assert "info_event" in capsys.readouterr().err

    def teardown_method(self) -> None:
        structlog.reset_defaults()
