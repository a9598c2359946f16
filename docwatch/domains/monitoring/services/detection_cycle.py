"""One polling cycle of a monitored document: fetch, diff, match, notify."""

from __future__ import annotations

import functools
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from docwatch.domains.diffing.core.difference_detection import detect
from docwatch.domains.diffing.core.difference_matching import match
from docwatch.domains.parsing.core.language import detect_language
from docwatch.domains.reading.core.checksum import has_content_changed
from docwatch.errors import CycleTimeoutError

if TYPE_CHECKING:
    from collections.abc import Callable

    from docwatch.domains.diffing.core.types import DiffSpan, Match
    from docwatch.domains.diffing.services.keyword_builder import KeywordBuilder
    from docwatch.domains.monitoring.repositories.snapshot_repository import SnapshotRepository
    from docwatch.domains.monitoring.repositories.subscription_repository import (
        SubscriptionRepository,
    )
    from docwatch.domains.monitoring.services.notifier import NotificationSender
    from docwatch.domains.parsing.core.tokenizer import Parser, TokenizeOptions
    from docwatch.domains.parsing.services.parser_pool import ParserPool
    from docwatch.domains.reading.services.document_fetcher import DocumentFetcher
    from docwatch.models.snapshot import Snapshot
    from docwatch.models.subscription import Subscription

logger = structlog.get_logger(__name__)


class CycleStatus(StrEnum):
    """What a cycle did with the snapshot it fetched."""

    FIRST_SNAPSHOT = "first_snapshot"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


@dataclass
class CycleResult:
    """Outcome of one detection cycle."""

    url: str
    content_type: str
    status: CycleStatus
    spans: list[DiffSpan] = field(default_factory=list)
    matches: dict[int, set[Match]] = field(default_factory=dict)
    notifications_sent: int = 0

    @property
    def match_count(self) -> int:
        return sum(len(found) for found in self.matches.values())


class DetectionCycle:
    """Runs detection and matching for one document at a time.

    Holds no per-document state, so one instance serves every worker
    thread. The new snapshot is committed only after detection and matching
    succeeded and the deadline has not passed; a failed or abandoned cycle
    leaves both retained snapshots untouched.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        snapshot_repo: SnapshotRepository,
        subscription_repo: SubscriptionRepository,
        pool: ParserPool,
        keyword_builder: KeywordBuilder,
        notifier: NotificationSender,
        detection_options: TokenizeOptions,
        acquire_timeout: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fetcher = fetcher
        self.snapshot_repo = snapshot_repo
        self.subscription_repo = subscription_repo
        self.pool = pool
        self.keyword_builder = keyword_builder
        self.notifier = notifier
        self.detection_options = detection_options
        self.acquire_timeout = acquire_timeout
        self.clock = clock

    def run(self, url: str, content_type: str, deadline: float | None = None) -> CycleResult:
        """Run one cycle. ``deadline`` is a ``clock()`` value.

        Raises CycleTimeoutError when the deadline passes before the new
        snapshot is committed. Every other error propagates unchanged.
        """
        started = self.clock()
        history = self.snapshot_repo.get_history(url, content_type)
        snapshot = self.fetcher.fetch(url, content_type)
        self._check_deadline(deadline, url, "fetch")

        previous = history.newer
        if previous is None:
            self.snapshot_repo.store_snapshot(snapshot)
            logger.info("first_snapshot_stored", url=url, content_type=content_type)
            return CycleResult(url, content_type, CycleStatus.FIRST_SNAPSHOT)

        if not has_content_changed(previous.content_checksum, snapshot.content_checksum):
            self.snapshot_repo.store_snapshot(snapshot)
            logger.debug("document_unchanged", url=url, content_type=content_type)
            return CycleResult(url, content_type, CycleStatus.UNCHANGED)

        subscriptions = self.subscription_repo.get_subscriptions_for_document(url, content_type)
        with self.pool.acquire(self._acquire_timeout(deadline, url)) as parser:
            spans, matches = self._detect_and_match(parser, previous, snapshot, subscriptions)

        self._check_deadline(deadline, url, "matching")
        self.snapshot_repo.store_snapshot(snapshot)

        result = CycleResult(url, content_type, CycleStatus.CHANGED, spans=spans, matches=matches)
        for subscription in subscriptions:
            found = matches.get(subscription.id or 0)
            if found and self.notifier.notify_matches(subscription, found):
                result.notifications_sent += 1

        logger.info(
            "detection_completed",
            url=url,
            content_type=content_type,
            spans=len(spans),
            matches=result.match_count,
            notifications=result.notifications_sent,
            elapsed=f"{self.clock() - started:.3f}s",
        )
        return result

    def _detect_and_match(
        self,
        parser: Parser,
        previous: Snapshot,
        current: Snapshot,
        subscriptions: list[Subscription],
    ) -> tuple[list[DiffSpan], dict[int, set[Match]]]:
        language = self._resolve_language(current.raw_text, subscriptions)
        options = self.detection_options.with_language(language)

        old_tokens = parser.tokenize(previous.raw_text, options)
        new_tokens = parser.tokenize(current.raw_text, options)
        spans = detect(old_tokens, previous.raw_text, new_tokens, current.raw_text)

        matches: dict[int, set[Match]] = {}
        for subscription in subscriptions:
            subscription_options = subscription.tokenize_options(language)
            keywords = self.keyword_builder.build(
                subscription.keywords, subscription_options, parser=parser
            )
            matches[subscription.id or 0] = match(
                spans,
                keywords,
                subscription.ignore_inserted,
                subscription.ignore_deleted,
                subscription.snippet_radius,
                previous.raw_text,
                current.raw_text,
                tokenizer=functools.partial(parser.tokenize, options=subscription_options),
            )
        return spans, matches

    def _resolve_language(self, text: str, subscriptions: list[Subscription]) -> str | None:
        """Language shared by snapshot and keyword tokenizing, if any step needs one.

        Detecting once per cycle keeps short spans and keywords from being
        classified on their own, which would give them different stopwords
        and stemmers than the document they came from.
        """
        needs_language = (
            self.detection_options.filter_stopwords
            or self.detection_options.enable_stemming
            or any(s.filter_stopwords or s.enable_stemming for s in subscriptions)
        )
        if not needs_language:
            return self.detection_options.language_hint
        return detect_language(text, self.detection_options.language_hint)

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return deadline - self.clock()

    def _check_deadline(self, deadline: float | None, url: str, stage: str) -> None:
        remaining = self._remaining(deadline)
        if remaining is not None and remaining <= 0:
            msg = f"Detection cycle for {url} exceeded its deadline after {stage}"
            raise CycleTimeoutError(msg)

    def _acquire_timeout(self, deadline: float | None, url: str) -> float:
        self._check_deadline(deadline, url, "fetch")
        remaining = self._remaining(deadline)
        if remaining is None:
            return self.acquire_timeout
        return min(self.acquire_timeout, remaining)
