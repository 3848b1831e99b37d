from __future__ import annotations

import sqlite3
from typing import Optional


class KeyValueRepo:
    """SQLite-backed implementation of the key-value persistence port."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get(self, key: str) -> Optional[str]:
        cur = self.conn.cursor()
        cur.execute("SELECT value FROM app_state WHERE key = ?", (key,))
        row = cur.fetchone()
        return str(row[0]) if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            (
                "INSERT INTO app_state (key, value, updated_at) VALUES (?, ?, datetime('now')) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at"
            ),
            (key, value),
        )
        self.conn.commit()

    def remove(self, key: str) -> None:
        self.conn.execute("DELETE FROM app_state WHERE key = ?", (key,))
        self.conn.commit()
