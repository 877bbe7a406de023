"""SQLite-backed KeyValueStorePort so cached results survive process restarts."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from resultpoll.core.interfaces.key_value_store import KeyValueStorePort

_SCHEMA = """
CREATE TABLE IF NOT EXISTS result_cache (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class SqliteKeyValueStore(KeyValueStorePort):
    """One table, one row per key. Opens a short-lived connection per call."""

    def __init__(self, path: str | Path) -> None:
        # file path only: ":memory:" would give every connection its own database
        self._path = str(path)
        Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn:
            conn.execute(_SCHEMA)
            conn.commit()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._path)

    def get(self, key: str) -> Optional[str]:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT value FROM result_cache WHERE key = ?",
                (key,),
            ).fetchone()
        if not row:
            return None
        return row[0]

    def set(self, key: str, value: str) -> None:
        updated_at = datetime.now(timezone.utc).isoformat()
        with closing(self._connect()) as conn:
            conn.execute(
                """
                INSERT INTO result_cache (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, updated_at),
            )
            conn.commit()

    def delete(self, key: str) -> None:
        with closing(self._connect()) as conn:
            conn.execute("DELETE FROM result_cache WHERE key = ?", (key,))
            conn.commit()

    def keys(self, prefix: str = "") -> List[str]:
        escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT key FROM result_cache WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                (escaped + "%",),
            ).fetchall()
        return [row[0] for row in rows]
