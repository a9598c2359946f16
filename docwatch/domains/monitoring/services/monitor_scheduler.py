"""Scheduling of detection cycles across every monitored document."""

from __future__ import annotations

import secrets
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from docwatch.errors import DocumentNotReadableError
from docwatch.models.subscription import DEFAULT_EVENTS, Subscription
from docwatch.utils.progress import ProgressTracker

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from docwatch.domains.diffing.core.types import DiffEvent
    from docwatch.domains.monitoring.repositories.snapshot_repository import SnapshotRepository
    from docwatch.domains.monitoring.repositories.subscription_repository import (
        SubscriptionRepository,
    )
    from docwatch.domains.monitoring.services.detection_cycle import CycleResult, DetectionCycle
    from docwatch.domains.monitoring.services.notifier import NotificationSender
    from docwatch.domains.parsing.services.parser_pool import ParserPool
    from docwatch.domains.reading.services.document_fetcher import DocumentFetcher

logger = structlog.get_logger(__name__)

DEFAULT_FAULT_TOLERANCE = 10
TOKEN_BYTES = 16


@dataclass
class MonitoredDocument:
    """Scheduling state of one ``(url, content_type)`` pair."""

    url: str
    content_type: str
    interval_seconds: int
    next_run: float = 0.0
    faults: int = 0

    @property
    def key(self) -> tuple[str, str]:
        return (self.url, self.content_type)

    def is_due(self, now: float) -> bool:
        return self.next_run <= now


class MonitorScheduler:
    """Owns the monitored documents and runs their cycles on worker threads.

    A document is polled at the smallest interval among its subscriptions.
    Cycles of different documents run in parallel; a document is never
    processed by two cycles at once because a tick waits for every cycle it
    started. After ``fault_tolerance`` consecutive failures the document is
    timed out: subscribers are told, then its subscriptions and snapshots
    are removed.
    """

    def __init__(
        self,
        cycle: DetectionCycle,
        subscription_repo: SubscriptionRepository,
        snapshot_repo: SnapshotRepository,
        fetcher: DocumentFetcher,
        notifier: NotificationSender,
        pool: ParserPool,
        worker_count: int = 4,
        fault_tolerance: int = DEFAULT_FAULT_TOLERANCE,
        default_interval: int = 600,
        default_snippet_radius: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cycle = cycle
        self.subscription_repo = subscription_repo
        self.snapshot_repo = snapshot_repo
        self.fetcher = fetcher
        self.notifier = notifier
        self.pool = pool
        self.fault_tolerance = fault_tolerance
        self.default_interval = default_interval
        self.default_snippet_radius = default_snippet_radius
        self.clock = clock
        self._documents: dict[tuple[str, str], MonitoredDocument] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix="docwatch")
        self._closed = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def load(self) -> int:
        """Register every document that has stored subscriptions."""
        for subscription in self.subscription_repo.get_all_subscriptions():
            self._register(subscription)
        logger.info("monitored_documents_loaded", count=len(self._documents))
        return len(self._documents)

    def watch(
        self,
        document_url: str,
        document_content_type: str,
        client_url: str,
        keywords: Iterable[str],
        client_content_type: str = "application/json",
        events: Iterable[DiffEvent] = DEFAULT_EVENTS,
        filter_stopwords: bool = False,
        enable_stemming: bool = False,
        ignore_case: bool = True,
        snippet_radius: int | None = None,
        interval_seconds: int | None = None,
    ) -> Subscription:
        """Subscribe a client to keyword changes of a document.

        The document must be readable right now. Re-watching with the same
        document and client replaces the previous keywords and options and
        issues a new token.

        Raises DocumentNotReadableError when the document cannot be fetched
        or read, and pydantic's ValidationError on invalid options.
        """
        subscription = Subscription(
            document_url=document_url,
            document_content_type=document_content_type,
            client_url=client_url,
            client_content_type=client_content_type,
            keywords=list(keywords),
            events=list(events),
            filter_stopwords=filter_stopwords,
            enable_stemming=enable_stemming,
            ignore_case=ignore_case,
            snippet_radius=(
                self.default_snippet_radius if snippet_radius is None else snippet_radius
            ),
            interval_seconds=(
                self.default_interval if interval_seconds is None else interval_seconds
            ),
            token=secrets.token_hex(TOKEN_BYTES),
        )
        if not self.fetcher.is_readable(
            subscription.document_url, subscription.document_content_type
        ):
            raise DocumentNotReadableError(
                subscription.document_url, subscription.document_content_type
            )

        subscription_id = self.subscription_repo.upsert_subscription(subscription)
        subscription = subscription.model_copy(update={"id": subscription_id})
        self._register(subscription)
        self._refresh_interval(subscription.document_url, subscription.document_content_type)
        logger.info(
            "watch_registered",
            url=subscription.document_url,
            content_type=subscription.document_content_type,
            client_url=subscription.client_url,
            keywords=len(subscription.keywords),
        )
        return subscription

    def cancel(
        self,
        document_url: str,
        document_content_type: str,
        client_url: str,
        client_content_type: str = "application/json",
    ) -> bool:
        """Remove one subscription. Returns False when it did not exist.

        Cancelling the last subscription of a document stops monitoring it
        and drops its snapshots.
        """
        content_type = document_content_type.strip().lower()
        client_type = client_content_type.strip().lower()
        existing = self.subscription_repo.get_subscription(
            document_url, content_type, client_url, client_type
        )
        if existing is None:
            return False
        self.subscription_repo.delete_subscription(
            document_url, content_type, client_url, client_type
        )
        self.cycle.keyword_builder.discard(existing.keywords)

        logger.info("watch_cancelled", url=document_url, client_url=client_url)
        if self.subscription_repo.count_for_document(document_url, content_type) == 0:
            self._forget(document_url, content_type)
        else:
            self._refresh_interval(document_url, content_type)
        return True

    def documents(self) -> list[MonitoredDocument]:
        with self._lock:
            return list(self._documents.values())

    def _register(self, subscription: Subscription) -> None:
        key = subscription.document_key
        with self._lock:
            document = self._documents.get(key)
            if document is None:
                self._documents[key] = MonitoredDocument(
                    url=subscription.document_url,
                    content_type=subscription.document_content_type,
                    interval_seconds=subscription.interval_seconds,
                )
            else:
                document.interval_seconds = min(
                    document.interval_seconds, subscription.interval_seconds
                )

    def _refresh_interval(self, url: str, content_type: str) -> None:
        subscriptions = self.subscription_repo.get_subscriptions_for_document(url, content_type)
        with self._lock:
            document = self._documents.get((url, content_type))
            if document is not None and subscriptions:
                document.interval_seconds = min(s.interval_seconds for s in subscriptions)

    def _forget(self, url: str, content_type: str) -> None:
        with self._lock:
            self._documents.pop((url, content_type), None)
        self.snapshot_repo.remove_document(url, content_type)
        logger.info("document_unmonitored", url=url, content_type=content_type)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_pending(self, now: float | None = None) -> dict[str, Any]:
        """Run every due cycle in parallel and wait for all of them.

        ``now`` is the scheduling time on the scheduler's clock; each cycle
        gets a deadline of one interval from when it is submitted.
        """
        now = self.clock() if now is None else now
        with self._lock:
            due = [document for document in self._documents.values() if document.is_due(now)]
        tracker = ProgressTracker(total=len(due))
        if not due:
            return tracker.summary()

        futures = {}
        for document in due:
            document.next_run = now + document.interval_seconds
            deadline = self.cycle.clock() + document.interval_seconds
            future = self._executor.submit(
                self.cycle.run, document.url, document.content_type, deadline
            )
            futures[future] = document

        for future in as_completed(futures):
            document = futures[future]
            try:
                result: CycleResult = future.result()
            except Exception as exc:
                logger.error(
                    "detection_cycle_failed",
                    url=document.url,
                    content_type=document.content_type,
                    error=str(exc),
                    error_type=type(exc).__name__,
                    faults=document.faults + 1,
                )
                tracker.record_failure(f"{document.url}: {exc}")
                self._record_fault(document)
            else:
                document.faults = 0
                tracker.record_success(notifications=result.notifications_sent)
            tracker.log_progress(every_n=10)

        return tracker.summary()

    def run_forever(self, stop_event: threading.Event, poll_seconds: float = 1.0) -> None:
        """Tick until ``stop_event`` is set."""
        logger.info("scheduler_started", documents=len(self._documents))
        while not stop_event.is_set():
            self.run_pending()
            stop_event.wait(poll_seconds)
        logger.info("scheduler_stopped")

    def _record_fault(self, document: MonitoredDocument) -> None:
        document.faults += 1
        if document.faults >= self.fault_tolerance:
            self.timeout_document(document.url, document.content_type)

    def timeout_document(self, url: str, content_type: str) -> int:
        """Stop monitoring a document and tell each subscriber. Returns subscribers told."""
        subscriptions = self.subscription_repo.get_subscriptions_for_document(url, content_type)
        notified = sum(1 for s in subscriptions if self.notifier.notify_timeout(s))
        self.subscription_repo.delete_subscriptions_for_document(url, content_type)
        self.cycle.keyword_builder.discard(
            {keyword for s in subscriptions for keyword in s.keywords}
        )
        self._forget(url, content_type)
        logger.warning(
            "document_timed_out",
            url=url,
            content_type=content_type,
            subscribers=len(subscriptions),
            notified=notified,
        )
        return notified

    def shutdown(self) -> None:
        """Stop the worker threads and release pooled resources."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self.pool.close()
        self.fetcher.close()
        self.notifier.close()
        logger.info("scheduler_shutdown")
