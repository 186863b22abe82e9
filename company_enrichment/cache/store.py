"""SQLite-based cache for directory page responses."""

from __future__ import annotations

import hashlib
import logging
import sqlite3
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


class ResponseCache:
    """Caches successful page bodies by URL for a bounded time window.

    Cache failures never surface to callers: on any SQLite problem the cache
    behaves as if it were empty.
    """

    def __init__(self, db_path: str = ".enrichment_cache.db", ttl_seconds: int = 3600):
        self.db_path = db_path
        self.ttl_seconds = ttl_seconds
        self.conn: sqlite3.Connection | None = None
        self._init_db()

    def _init_db(self) -> None:
        try:
            self.conn = sqlite3.connect(self.db_path, timeout=10, check_same_thread=False)
            if self.db_path != ":memory:":
                self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.executescript("""
                CREATE TABLE IF NOT EXISTS response_cache (
                    url_hash TEXT PRIMARY KEY,
                    url TEXT NOT NULL,
                    status INTEGER NOT NULL,
                    body TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
            """)
            self.conn.commit()
        except Exception as e:
            logger.warning("Cache init failed: %s — running without cache", e)
            self.conn = None

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def get(self, url: str) -> tuple[int, str] | None:
        """Return (status, body) for a fresh entry, or None."""
        if self.conn is None:
            return None
        try:
            row = self.conn.execute(
                "SELECT status, body, created_at FROM response_cache WHERE url_hash = ?",
                (_hash(url),),
            ).fetchone()
        except sqlite3.Error as e:
            logger.debug("Cache read error: %s", e)
            return None
        if not row:
            return None
        if _is_expired(row[2], self.ttl_seconds):
            return None
        return row[0], row[1]

    def set(self, url: str, status: int, body: str) -> None:
        if self.conn is None:
            return
        try:
            self.conn.execute(
                "INSERT OR REPLACE INTO response_cache (url_hash, url, status, body, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (_hash(url), url, status, body, datetime.now().isoformat()),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            logger.debug("Cache write error: %s", e)

    def stats(self) -> dict:
        """Return entry count and date range."""
        if self.conn is None:
            return {}
        try:
            count, oldest, newest = self.conn.execute(
                "SELECT COUNT(*), MIN(created_at), MAX(created_at) FROM response_cache"
            ).fetchone()
        except sqlite3.Error:
            return {"count": 0, "oldest": None, "newest": None}
        return {"count": count, "oldest": oldest, "newest": newest}

    def clear(self) -> None:
        if self.conn is None:
            return
        try:
            self.conn.execute("DELETE FROM response_cache")
            self.conn.commit()
        except sqlite3.Error as e:
            logger.debug("Cache clear error: %s", e)


def _hash(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()[:32]


def _is_expired(created_at_str: str, ttl_seconds: int) -> bool:
    try:
        created = datetime.fromisoformat(created_at_str)
        return datetime.now() - created > timedelta(seconds=ttl_seconds)
    except ValueError:
        return True
