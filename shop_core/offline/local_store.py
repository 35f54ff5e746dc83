# =============================================================================
# shop_core/offline/local_store.py
# Device-local Key/Value Store for Offline Operation
# =============================================================================
"""
LocalStore - SQLite-backed, string-keyed blob storage.

Holds the serialized order collection while offline, the colour and texture
catalogs, and the stored Supabase credentials. Reads and writes are
synchronous and whole-blob: callers serialize, the store only persists.
"""

from __future__ import annotations
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Union
import logging

logger = logging.getLogger(__name__)


class LocalStore:
    """
    Persistent key/value storage scoped to this device.

    Usage:
        store = LocalStore(Path("local_data/orders.db"))
        store.set("3d-print-orders", blob)
        blob = store.get("3d-print-orders")
    """

    DEFAULT_DB_PATH = Path(__file__).parent.parent.parent / "local_data" / "printshop.db"

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path) if db_path else self.DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            self._connection.execute(self.SCHEMA)
            self._connection.commit()
            logger.info(f"Local store opened at: {self.db_path}")
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for store transactions."""
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def get(self, key: str) -> Optional[str]:
        """Return the blob stored under ``key``, or None."""
        with self._lock:
            row = self._get_connection().execute(
                "SELECT value FROM kv_store WHERE key = ?", [key]
            ).fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous blob."""
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                VALUES (?, ?, ?)
                """,
                [key, value, datetime.now().isoformat()],
            )

    def delete(self, key: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", [key])
            return cursor.rowcount > 0

    def keys(self) -> List[str]:
        with self._lock:
            rows = self._get_connection().execute("SELECT key FROM kv_store ORDER BY key").fetchall()
        return [row["key"] for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None
