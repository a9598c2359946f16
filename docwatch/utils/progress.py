"""Progress tracking for scheduler ticks."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from docwatch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProgressTracker:
    """Track the outcome of detection cycles run during one scheduler tick.

    Cycles complete on worker threads, so every counter update goes through
    a lock.
    """

    total: int
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    notifications: int = 0
    errors: list[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_success(self, notifications: int = 0) -> None:
        """Record a completed cycle and the notifications it produced."""
        with self._lock:
            self.processed += 1
            self.successful += 1
            self.notifications += notifications

    def record_failure(self, error: str) -> None:
        """Record a failed cycle."""
        with self._lock:
            self.processed += 1
            self.failed += 1
            self.errors.append(error)

    def record_skip(self) -> None:
        """Record a document that was not due or had nothing to compare."""
        with self._lock:
            self.processed += 1
            self.skipped += 1

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time

    @property
    def progress_percentage(self) -> float:
        if self.total == 0:
            return 100.0
        return (self.processed / self.total) * 100.0

    def log_progress(self, every_n: int = 10) -> None:
        """Log progress every N cycles and once all cycles are done."""
        if self.processed % every_n == 0 or self.processed == self.total:
            logger.info(
                "tick_progress",
                processed=self.processed,
                total=self.total,
                successful=self.successful,
                failed=self.failed,
                skipped=self.skipped,
                notifications=self.notifications,
                percentage=f"{self.progress_percentage:.1f}%",
                elapsed=f"{self.elapsed_seconds:.1f}s",
            )

    def summary(self) -> dict[str, int | float | list[str]]:
        """Return summary statistics."""
        return {
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "notifications": self.notifications,
            "duration_seconds": round(self.elapsed_seconds, 2),
            "errors": self.errors,
        }
