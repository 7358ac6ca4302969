"""SQLite storage for scanner subscribers and alert history."""

import os
import re
import sqlite3
import threading
from contextlib import contextmanager
from typing import Optional

from models import Subscriber, utcnow
from utils.logging_config import get_logger

logger = get_logger("db")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.match(email) is not None


class SubscriberStore:
    """SQLite store for subscribers and repositories already announced.

    Uses thread-local connections so blocking calls can be moved onto worker
    threads from async code.
    """

    def __init__(self, db_path: str = "data/spark.db"):
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file.
        """
        self.db_path = db_path
        self._local = threading.local()
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._init_tables()

    def _get_connection(self) -> sqlite3.Connection:
        if not hasattr(self._local, "connection") or self._local.connection is None:
            self._local.connection = sqlite3.connect(self.db_path)
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    @contextmanager
    def _transaction(self):
        """Commit on success, roll back on error."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error("Database transaction failed: %s", e)
            raise

    def close(self):
        """Close the thread-local connection if open."""
        if hasattr(self._local, "connection") and self._local.connection:
            self._local.connection.close()
            self._local.connection = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _init_tables(self) -> None:
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS subscribers (
                    email TEXT PRIMARY KEY,
                    subscribed_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS alerted_repos (
                    full_name TEXT PRIMARY KEY,
                    stars INTEGER DEFAULT 0,
                    velocity_score REAL DEFAULT 0,
                    alerted_at TEXT NOT NULL
                )
            """)

    # ── Subscribers ──────────────────────────────────────────

    def add_subscriber(self, email: str) -> bool:
        """Add a subscriber.

        Returns:
            True if added, False if the address was already subscribed.
        """
        email = email.strip().lower()
        subscriber = Subscriber(email=email)
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO subscribers (email, subscribed_at) VALUES (?, ?)",
                (subscriber.email, subscriber.subscribed_at),
            )
            return cursor.rowcount > 0

    def remove_subscriber(self, email: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM subscribers WHERE email = ?", (email.strip().lower(),)
            )
            return cursor.rowcount > 0

    def list_subscribers(self) -> list[Subscriber]:
        rows = self._get_connection().execute(
            "SELECT email, subscribed_at FROM subscribers ORDER BY subscribed_at"
        ).fetchall()
        return [Subscriber(email=row["email"], subscribed_at=row["subscribed_at"]) for row in rows]

    # ── Alert history ────────────────────────────────────────

    def has_alerted(self, full_name: str) -> bool:
        row = self._get_connection().execute(
            "SELECT 1 FROM alerted_repos WHERE full_name = ?", (full_name,)
        ).fetchone()
        return row is not None

    def mark_alerted(self, full_name: str, stars: int, velocity_score: float) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO alerted_repos (full_name, stars, velocity_score, alerted_at)
                VALUES (?, ?, ?, ?)
                """,
                (full_name, stars, velocity_score, utcnow().isoformat()),
            )

    def get_alerted(self, limit: int = 50) -> list[dict]:
        rows = self._get_connection().execute(
            "SELECT * FROM alerted_repos ORDER BY alerted_at DESC LIMIT ?", (limit,)
        ).fetchall()
        return [dict(row) for row in rows]


def get_store(config: dict, db_path: Optional[str] = None) -> SubscriberStore:
    """Create a store from the ``database.path`` config entry."""
    path = db_path or config.get("database", {}).get("path", "data/spark.db")
    return SubscriberStore(path)
