"""Snapshot repository for database CRUD operations."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from docwatch.domains.monitoring.core.snapshot_history import (
    MAX_RETAINED_SNAPSHOTS,
    SnapshotHistory,
)
from docwatch.models.snapshot import Snapshot

if TYPE_CHECKING:
    from docwatch.services.database import Database

logger = structlog.get_logger(__name__)


class SnapshotRepository:
    """Repository for the retained snapshots of every monitored document."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def store_snapshot(self, snapshot: Snapshot) -> int:
        """Store a new snapshot and evict all but the two most recent.

        Insert and eviction happen in one transaction, so readers never see
        three snapshots or a document with its history partly removed.
        Returns the new snapshot ID.
        """
        with self.db.transaction() as cursor:
            cursor.execute(
                """INSERT INTO snapshots
                   (url, content_type, raw_text, content_checksum, fetched_at, http_last_modified)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    snapshot.url,
                    snapshot.content_type,
                    snapshot.raw_text,
                    snapshot.content_checksum,
                    snapshot.fetched_at.isoformat(),
                    (
                        snapshot.http_last_modified.isoformat()
                        if snapshot.http_last_modified
                        else None
                    ),
                ),
            )
            snapshot_id = cursor.lastrowid or 0
            cursor.execute(
                """DELETE FROM snapshots
                   WHERE url = ? AND content_type = ?
                   AND id NOT IN (
                       SELECT id FROM snapshots
                       WHERE url = ? AND content_type = ?
                       ORDER BY fetched_at DESC, id DESC
                       LIMIT ?
                   )""",
                (
                    snapshot.url,
                    snapshot.content_type,
                    snapshot.url,
                    snapshot.content_type,
                    MAX_RETAINED_SNAPSHOTS,
                ),
            )
            evicted = cursor.rowcount
        if evicted:
            logger.debug("snapshots_evicted", url=snapshot.url, count=evicted)
        return snapshot_id

    def get_latest_snapshots(
        self, url: str, content_type: str, limit: int = MAX_RETAINED_SNAPSHOTS
    ) -> list[Snapshot]:
        """Most recent snapshots of a document, newest first."""
        rows = self.db.fetchall(
            """SELECT * FROM snapshots
               WHERE url = ? AND content_type = ?
               ORDER BY fetched_at DESC, id DESC
               LIMIT ?""",
            (url, content_type, limit),
        )
        return [self._to_snapshot(dict(row)) for row in rows]

    def get_history(self, url: str, content_type: str) -> SnapshotHistory:
        """Both retained slots of a document."""
        return SnapshotHistory.from_snapshots(self.get_latest_snapshots(url, content_type))

    def count_snapshots(self, url: str, content_type: str) -> int:
        row = self.db.fetchone(
            "SELECT COUNT(*) as cnt FROM snapshots WHERE url = ? AND content_type = ?",
            (url, content_type),
        )
        return row["cnt"] if row else 0

    def remove_document(self, url: str, content_type: str) -> int:
        """Drop every retained snapshot of a document. Returns rows removed."""
        with self.db.transaction() as cursor:
            cursor.execute(
                "DELETE FROM snapshots WHERE url = ? AND content_type = ?",
                (url, content_type),
            )
            removed = cursor.rowcount
        logger.info("document_snapshots_removed", url=url, content_type=content_type, count=removed)
        return removed

    @staticmethod
    def _to_snapshot(row: dict[str, Any]) -> Snapshot:
        last_modified = row.get("http_last_modified")
        return Snapshot(
            id=row["id"],
            url=row["url"],
            content_type=row["content_type"],
            raw_text=row["raw_text"],
            content_checksum=row["content_checksum"],
            fetched_at=datetime.fromisoformat(row["fetched_at"]),
            http_last_modified=datetime.fromisoformat(last_modified) if last_modified else None,
        )
