"""
SQLite-based key-value store implementation.

Tables:
- kv_store: string key -> string value, with last update timestamp
"""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from ..errors import PersistenceError

logger = logging.getLogger(__name__)

# Fixed keys of the persisted state layout
THEME_KEY = "ai_theme"
MODEL_KEY = "selected_model"
CREDENTIAL_KEY = "hf_token"
HISTORY_KEY = "ai_history"


class LocalStore:
    """
    SQLite-backed key-value store for preferences and scan history.

    Values are plain strings; callers serialize structured data themselves.
    Every call opens its own connection and commits before returning, so a
    successful set() or remove() is durable once it returns.

    Any sqlite3 failure is raised as PersistenceError.
    """

    def __init__(self, db_path: Path | str):
        """
        Initialize local store.

        Args:
            db_path: Path to SQLite database file (":memory:" is not supported,
                since each call uses a fresh connection)
        """
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create store directory: {e}") from e
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open store at {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Store operation failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )

    def get(self, key: str) -> str | None:
        """Get the value stored under key, or None if absent."""
        with self._transaction() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        now = datetime.now(timezone.utc).isoformat()
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
            """,
                (key, value, now),
            )
        logger.debug("Stored key %s (%d chars)", key, len(value))

    def remove(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        logger.debug("Removed key %s", key)

    def keys(self) -> list[str]:
        """List stored keys in sorted order."""
        with self._transaction() as conn:
            rows = conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row["key"] for row in rows]
