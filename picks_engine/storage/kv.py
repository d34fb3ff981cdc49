"""
Key-value storage layer for the Daily Picks Engine.

Everything the engine persists goes through a small key-value interface
so the cache, the user state and stored results can run against an
in-memory store in tests and a SQLite file in real use.

Key layout:
- cache:<prefix>:<key>       -> cache entries (scoreboard, odds, slates)
- results:<date>:<pick_id>   -> resolved pick outcomes
- user-state                 -> progression + today's card + history
- testing-state              -> sandbox copy of user-state
"""

import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union


class StorageError(Exception):
    """Raised when a store cannot read or write a value."""


# ============================================================================
# STORE INTERFACE
# ============================================================================

class KeyValueStore(ABC):
    """Abstract base class for string key-value stores."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored string, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a string value.

        Raises:
            StorageError: If the value cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self, prefix: str = "") -> List[str]:
        """List keys starting with prefix."""
        pass


# ============================================================================
# IN-MEMORY STORE
# ============================================================================

class MemoryStore(KeyValueStore):
    """
    Dict-backed store.

    An optional quota (total bytes of keys + values) makes writes fail the
    way a full browser or disk store does, which the cache layer must
    survive.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        total = 0
        for k, v in self._data.items():
            if k == key:
                continue
            total += len(k) + len(v)
        return total + len(key) + len(value)

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key} must be a string")
        if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
            raise StorageError(f"Quota exceeded writing {key}")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return [k for k in self._data if k.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._data)


# ============================================================================
# SQLITE STORE
# ============================================================================

class SQLiteStore(KeyValueStore):
    """
    Key-value store in a single SQLite table.

    Table:
    - kv_store: key (PRIMARY KEY), value, updated_at
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        self.init_db()

    def connect(self) -> sqlite3.Connection:
        """Open a connection with dict-like row access."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self):
        """Create the kv_store table if needed. Safe to call multiple times."""
        try:
            conn = self.connect()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize {self.db_path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        try:
            conn = self.connect()
            try:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read {key}: {e}") from e
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        if not isinstance(value, str):
            raise StorageError(f"Value for {key} must be a string")
        try:
            conn = self.connect()
            try:
                conn.execute("""
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                """, (key, value, datetime.now().isoformat()))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot write {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            conn = self.connect()
            try:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot delete {key}: {e}") from e

    def keys(self, prefix: str = "") -> List[str]:
        # Escape LIKE wildcards so prefixes match literally
        pattern = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        try:
            conn = self.connect()
            try:
                rows = conn.execute(
                    "SELECT key FROM kv_store WHERE key LIKE ? ESCAPE '\\' ORDER BY key",
                    (pattern,),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot list keys: {e}") from e
        return [row["key"] for row in rows]
