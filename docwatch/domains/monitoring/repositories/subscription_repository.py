"""Subscription repository for database CRUD operations."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from docwatch.domains.diffing.core.types import DiffEvent
from docwatch.models.subscription import Subscription

if TYPE_CHECKING:
    from docwatch.services.database import Database

logger = structlog.get_logger(__name__)


class SubscriptionRepository:
    """Repository for subscription data access.

    A subscription is identified by its document URL and content type plus
    its client URL and content type; storing the same four again replaces
    the keywords and options of the existing row.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def upsert_subscription(self, subscription: Subscription) -> int:
        """Insert or update a subscription. Returns subscription ID."""
        existing = self.get_subscription(
            subscription.document_url,
            subscription.document_content_type,
            subscription.client_url,
            subscription.client_content_type,
        )
        values = (
            json.dumps(subscription.keywords),
            json.dumps([event.value for event in subscription.events]),
            1 if subscription.filter_stopwords else 0,
            1 if subscription.enable_stemming else 0,
            1 if subscription.ignore_case else 0,
            subscription.snippet_radius,
            subscription.interval_seconds,
            subscription.token,
        )

        if existing is not None and existing.id is not None:
            self.db.execute(
                """UPDATE subscriptions SET
                   keywords = ?, events = ?, filter_stopwords = ?, enable_stemming = ?,
                   ignore_case = ?, snippet_radius = ?, interval_seconds = ?, token = ?
                   WHERE id = ?""",
                (*values, existing.id),
            )
            logger.info("subscription_updated", id=existing.id, url=subscription.document_url)
            return existing.id

        with self.db.transaction() as cursor:
            cursor.execute(
                """INSERT INTO subscriptions
                   (document_url, document_content_type, client_url, client_content_type,
                    keywords, events, filter_stopwords, enable_stemming, ignore_case,
                    snippet_radius, interval_seconds, token, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    subscription.document_url,
                    subscription.document_content_type,
                    subscription.client_url,
                    subscription.client_content_type,
                    *values,
                    subscription.created_at.isoformat(),
                ),
            )
            subscription_id = cursor.lastrowid or 0
        logger.info("subscription_created", id=subscription_id, url=subscription.document_url)
        return subscription_id

    def get_subscription(
        self,
        document_url: str,
        document_content_type: str,
        client_url: str,
        client_content_type: str,
    ) -> Subscription | None:
        """Get a subscription by its unique key."""
        row = self.db.fetchone(
            """SELECT * FROM subscriptions
               WHERE document_url = ? AND document_content_type = ?
               AND client_url = ? AND client_content_type = ?""",
            (document_url, document_content_type, client_url, client_content_type),
        )
        return self._to_subscription(dict(row)) if row else None

    def get_subscriptions_for_document(
        self, document_url: str, document_content_type: str
    ) -> list[Subscription]:
        """Get every subscription of a document, oldest first."""
        rows = self.db.fetchall(
            """SELECT * FROM subscriptions
               WHERE document_url = ? AND document_content_type = ?
               ORDER BY id""",
            (document_url, document_content_type),
        )
        return [self._to_subscription(dict(row)) for row in rows]

    def get_all_subscriptions(self) -> list[Subscription]:
        """Get all subscriptions ordered by document."""
        rows = self.db.fetchall(
            "SELECT * FROM subscriptions ORDER BY document_url, document_content_type, id"
        )
        return [self._to_subscription(dict(row)) for row in rows]

    def get_documents(self) -> list[tuple[str, str]]:
        """Distinct ``(url, content_type)`` pairs that have subscribers."""
        rows = self.db.fetchall(
            """SELECT DISTINCT document_url, document_content_type FROM subscriptions
               ORDER BY document_url, document_content_type"""
        )
        return [(row["document_url"], row["document_content_type"]) for row in rows]

    def delete_subscription(
        self,
        document_url: str,
        document_content_type: str,
        client_url: str,
        client_content_type: str,
    ) -> bool:
        """Delete one subscription. Returns False when it did not exist."""
        cursor = self.db.execute(
            """DELETE FROM subscriptions
               WHERE document_url = ? AND document_content_type = ?
               AND client_url = ? AND client_content_type = ?""",
            (document_url, document_content_type, client_url, client_content_type),
        )
        return cursor.rowcount > 0

    def delete_subscriptions_for_document(
        self, document_url: str, document_content_type: str
    ) -> int:
        """Delete every subscription of a document. Returns rows removed."""
        cursor = self.db.execute(
            "DELETE FROM subscriptions WHERE document_url = ? AND document_content_type = ?",
            (document_url, document_content_type),
        )
        return cursor.rowcount

    def count_for_document(self, document_url: str, document_content_type: str) -> int:
        row = self.db.fetchone(
            """SELECT COUNT(*) as cnt FROM subscriptions
               WHERE document_url = ? AND document_content_type = ?""",
            (document_url, document_content_type),
        )
        return row["cnt"] if row else 0

    @staticmethod
    def _to_subscription(row: dict[str, Any]) -> Subscription:
        return Subscription(
            id=row["id"],
            document_url=row["document_url"],
            document_content_type=row["document_content_type"],
            client_url=row["client_url"],
            client_content_type=row["client_content_type"],
            keywords=json.loads(row["keywords"]),
            events=[DiffEvent(value) for value in json.loads(row["events"])],
            filter_stopwords=bool(row["filter_stopwords"]),
            enable_stemming=bool(row["enable_stemming"]),
            ignore_case=bool(row["ignore_case"]),
            snippet_radius=row["snippet_radius"],
            interval_seconds=row["interval_seconds"],
            token=row["token"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
