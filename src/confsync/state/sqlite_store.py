"""
SQLite-backed key-value store for cache metadata and favorites.
"""

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from ..core.exceptions import StorageError
from ..core.state_store import KeyValueStore


logger = logging.getLogger(__name__)


class SqliteKeyValueStore(KeyValueStore):
    """
    SQLite implementation of the key-value store.

    Every write is committed immediately. A single connection is shared
    across threads and guarded by a lock.
    """

    def __init__(self, db_path: Path, auto_init: bool = True):
        """
        Initialize the SQLite key-value store.

        Args:
            db_path: Path to the SQLite database file
            auto_init: Whether to create tables automatically
        """
        self.db_path = Path(db_path)
        self.conn = None
        self._lock = threading.Lock()
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False
            )
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot open state database {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        logger.debug(f"Connected to SQLite state store: {self.db_path}")

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._lock:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self.conn.commit()
        logger.debug("Initialized state store schema")

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        try:
            with self._lock:
                row = self.conn.execute(
                    "SELECT value FROM kv_entries WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e
        return row["value"] if row else default

    def set(self, key: str, value: str) -> None:
        try:
            with self._lock:
                self.conn.execute("""
                    INSERT INTO kv_entries (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (key, value, datetime.now(timezone.utc).isoformat()))
                self.conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to write state entry '{key}': {e}")
            raise StorageError(f"Failed to write '{key}': {e}") from e

    def delete(self, key: str) -> bool:
        try:
            with self._lock:
                cursor = self.conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
                self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to delete '{key}': {e}") from e
        return cursor.rowcount > 0

    def items(self) -> Dict[str, str]:
        with self._lock:
            rows = self.conn.execute("SELECT key, value FROM kv_entries ORDER BY key").fetchall()
        return {row["key"]: row["value"] for row in rows}

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            logger.debug("Closed SQLite state store connection")
