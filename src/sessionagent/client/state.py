"""Persistent key-value state for the agent.

This module provides:
- KeyValueStore: the storage capability the agent depends on
- LocalStateStore: SQLite-backed store surviving process restarts
- MemoryStore: dict-backed store for ephemeral runs

Values are plain strings; callers own their encoding.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Durable string key-value storage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class LocalStateStore:
    """SQLite-based key-value store."""

    def __init__(self, db_path: Path) -> None:
        """Open (or create) the state database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS agent_state (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        logger.debug("Opened agent state at %s", self._db_path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> LocalStateStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def get(self, key: str) -> str | None:
        """Get a value, or None if unset."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT value FROM agent_state WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO agent_state (key, value) VALUES (?, ?)",
                (key, value),
            )

    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM agent_state WHERE key = ?", (key,))


class MemoryStore:
    """In-memory key-value store (lost when the process exits)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
