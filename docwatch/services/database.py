"""SQLite database service."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Generator

logger = structlog.get_logger(__name__)


class Database:
    """SQLite database service with schema management.

    One connection is shared by every thread. All statements run under a
    re-entrant lock so that a transaction opened on one worker thread is
    never interleaved with statements from another.
    """

    def __init__(self, db_path: str = "data/docwatch.db") -> None:
        self.db_path = db_path
        self._ensure_directory()
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _ensure_directory(self) -> None:
        """Ensure the parent directory of the database file exists."""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    @property
    def connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        with self._lock:
            if self._connection is None:
                self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
                self._connection.row_factory = sqlite3.Row
                self._connection.execute("PRAGMA journal_mode=WAL")
                self._connection.execute("PRAGMA foreign_keys=ON")
            return self._connection

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """Context manager for database transactions."""
        with self._lock:
            conn = self.connection
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def execute(self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()) -> sqlite3.Cursor:
        """Execute a single SQL statement and commit it."""
        with self._lock:
            cursor = self.connection.execute(sql, params)
            self.connection.commit()
            return cursor

    def fetchone(
        self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()
    ) -> sqlite3.Row | None:
        """Execute and fetch one row."""
        with self._lock:
            return self.connection.execute(sql, params).fetchone()

    def fetchall(
        self, sql: str, params: tuple[Any, ...] | dict[str, Any] = ()
    ) -> list[sqlite3.Row]:
        """Execute and fetch all rows."""
        with self._lock:
            return self.connection.execute(sql, params).fetchall()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def init_db(self) -> None:
        """Initialize database schema. Creates all tables and indexes."""
        logger.info("initializing_database", path=self.db_path)

        with self.transaction() as cursor:
            # snapshots table: at most two rows per (url, content_type)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    url TEXT NOT NULL,
                    content_type TEXT NOT NULL,
                    raw_text TEXT NOT NULL,
                    content_checksum TEXT NOT NULL,
                    fetched_at TEXT NOT NULL,
                    http_last_modified TEXT
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_snapshots_document"
                " ON snapshots(url, content_type, fetched_at)"
            )

            # subscriptions table
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS subscriptions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_url TEXT NOT NULL,
                    document_content_type TEXT NOT NULL,
                    client_url TEXT NOT NULL,
                    client_content_type TEXT NOT NULL,
                    keywords TEXT NOT NULL,
                    events TEXT NOT NULL,
                    filter_stopwords INTEGER DEFAULT 0,
                    enable_stemming INTEGER DEFAULT 0,
                    ignore_case INTEGER DEFAULT 1,
                    snippet_radius INTEGER NOT NULL,
                    interval_seconds INTEGER NOT NULL,
                    token TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    UNIQUE(document_url, document_content_type, client_url, client_content_type)
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_subscriptions_document"
                " ON subscriptions(document_url, document_content_type)"
            )

        logger.info("database_initialized", path=self.db_path)
