"""
TTL cache over the key-value store.

Entries are JSON objects {value, written_at, expires_at} (epoch seconds)
stored under cache:<prefix>:<key>. get() never returns expired data;
get_stale() is the only way to read past expiry, used when the data
source is down or rate limited. A corrupt entry reads as a miss.
"""

import json
import logging
import time
from typing import Any, Callable, Optional

from picks_engine.model.config import CACHE_GRACE_PERIOD
from picks_engine.storage.kv import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class CacheManager:
    """TTL cache with stale reads and a grace-window eviction sweep."""

    def __init__(
        self,
        store: KeyValueStore,
        prefix: str = "sportsiq",
        clock: Callable[[], float] = time.time,
        grace_period: int = CACHE_GRACE_PERIOD,
    ):
        self.store = store
        self.prefix = prefix
        self.clock = clock
        self.grace_period = grace_period

    def _full_key(self, key: str) -> str:
        return f"cache:{self.prefix}:{key}"

    def _read_entry(self, full_key: str) -> Optional[dict]:
        """Load and validate a raw entry. Returns None if absent or corrupt."""
        try:
            raw = self.store.get(full_key)
        except StorageError as e:
            logger.warning("Cache read failed for %s: %s", full_key, e)
            return None
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(entry, dict) or "value" not in entry:
            return None
        if not isinstance(entry.get("expires_at"), (int, float)):
            return None
        return entry

    def _remove(self, full_key: str):
        try:
            self.store.delete(full_key)
        except StorageError as e:
            logger.warning("Cache delete failed for %s: %s", full_key, e)

    def set(self, key: str, value: Any, ttl: float) -> bool:
        """
        Store a value for ttl seconds.

        Never raises. On a failed write the old entries are swept so the
        next write has room.

        Returns:
            True if the entry was written
        """
        now = self.clock()
        entry = {"value": value, "written_at": now, "expires_at": now + ttl}
        try:
            self.store.set(self._full_key(key), json.dumps(entry))
            return True
        except (StorageError, TypeError, ValueError) as e:
            logger.warning("Cache write failed for %s: %s", key, e)
            self.clear_old_entries()
            return False

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value if it has not expired, else None.

        Expired entries stay in the store for get_stale() until the
        grace-window sweep removes them.
        """
        entry = self._read_entry(self._full_key(key))
        if entry is None or self.clock() > entry["expires_at"]:
            return None
        return entry["value"]

    def get_stale(self, key: str) -> Optional[Any]:
        """Return the cached value even if expired."""
        entry = self._read_entry(self._full_key(key))
        if entry is None:
            return None
        return entry["value"]

    def delete(self, key: str):
        self._remove(self._full_key(key))

    def clear_old_entries(self) -> int:
        """
        Remove entries expired for longer than the grace period, plus any
        corrupt entries.

        Returns:
            Number of entries removed
        """
        prefix = f"cache:{self.prefix}:"
        try:
            keys = self.store.keys(prefix)
        except StorageError as e:
            logger.warning("Cache sweep could not list keys: %s", e)
            return 0

        cutoff = self.clock() - self.grace_period
        removed = 0
        for full_key in keys:
            entry = self._read_entry(full_key)
            if entry is None or entry["expires_at"] < cutoff:
                self._remove(full_key)
                removed += 1

        if removed:
            logger.info("Cache sweep removed %d old entries", removed)
        return removed
