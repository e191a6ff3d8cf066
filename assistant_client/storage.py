"""
Key/value persistence for client-side state using SQLite.

Mirrors the browser's ``localStorage``: every entry is a string key mapped
to a string value (JSON text in practice).  The database lives in
``Asset/assistant.db`` inside the project root unless another path is
given; tests pass ``":memory:"``.

Writes are committed before the call returns, so a mutation that returned
successfully survives a crash right after it.
"""

import logging
import sqlite3

from .paths import asset_path

log = logging.getLogger("assistant_client")

#: Default database file name inside the asset folder.
DB_FILENAME = "assistant.db"


class LocalStorage:
    """String → string store backed by a single SQLite table."""

    def __init__(self, db_path: str | None = None) -> None:
        self._db_path = db_path or asset_path(DB_FILENAME)
        self._conn: sqlite3.Connection = sqlite3.connect(
            self._db_path, check_same_thread=False,
        )
        if self._db_path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()
        log.debug("[STORE] Opened local storage at %s", self._db_path)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _create_tables(self) -> None:
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS local_storage (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
        """)
        self._conn.commit()

    # ------------------------------------------------------------------
    # localStorage-style interface
    # ------------------------------------------------------------------

    def get_item(self, key: str) -> str | None:
        """Return the value stored under *key*, or *None*."""
        row = self._conn.execute(
            "SELECT value FROM local_storage WHERE key=?", (key,),
        ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        self._conn.execute(
            "INSERT OR REPLACE INTO local_storage (key, value) VALUES (?, ?)",
            (key, value),
        )
        self._conn.commit()

    def remove_item(self, key: str) -> None:
        """Delete *key*.  Missing keys are ignored."""
        self._conn.execute("DELETE FROM local_storage WHERE key=?", (key,))
        self._conn.commit()

    def keys(self) -> list[str]:
        rows = self._conn.execute(
            "SELECT key FROM local_storage ORDER BY key",
        ).fetchall()
        return [r[0] for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
