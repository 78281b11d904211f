import sqlite3
from contextlib import contextmanager
from typing import Optional

from config import DB_PATH


class StorageReadFailed(Exception):
    """Local storage could not be read."""


class StorageWriteFailed(Exception):
    """A write to local storage did not reach disk."""


def init_db(db_path: Optional[str] = None):
    with sqlite3.connect(db_path or DB_PATH) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS local_storage (
                key   TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """)
        conn.commit()


@contextmanager
def get_db(db_path: Optional[str] = None):
    conn = sqlite3.connect(db_path or DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


class LocalStorage:
    """Flat string key/value store backed by one SQLite table.

    Mirrors the browser ``localStorage`` surface: ``get_item`` returns None for
    a missing key, ``remove_item`` on a missing key is a no-op. Reads raise
    StorageReadFailed; writes raise StorageWriteFailed and roll back, so a
    failed write never replaces the previous value.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or DB_PATH
        init_db(self.db_path)

    def get_item(self, key: str) -> Optional[str]:
        try:
            with get_db(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM local_storage WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageReadFailed(f"could not read {key!r}: {exc}") from exc
        return row["value"] if row else None

    def set_item(self, key: str, value: str):
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO local_storage (key, value) VALUES (?, ?)",
                    (key, value),
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise StorageWriteFailed(f"could not write {key!r}: {exc}") from exc

    def remove_item(self, key: str):
        try:
            with get_db(self.db_path) as conn:
                conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
                conn.commit()
        except sqlite3.Error as exc:
            raise StorageWriteFailed(f"could not remove {key!r}: {exc}") from exc

