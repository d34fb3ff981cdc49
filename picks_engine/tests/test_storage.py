"""
Tests for the key-value stores and the TTL cache.
"""

import json

import pytest

from picks_engine.storage.kv import MemoryStore, SQLiteStore, StorageError
from picks_engine.utils.cache import CacheManager


class TestMemoryStore:
    """Tests for the in-memory store."""

    def test_set_get_delete(self):
        """Values round-trip and delete removes them."""
        store = MemoryStore()
        store.set("a", "1")
        assert store.get("a") == "1"
        store.delete("a")
        assert store.get("a") is None

    def test_delete_missing_is_noop(self):
        """Deleting an absent key should not raise."""
        MemoryStore().delete("missing")

    def test_keys_by_prefix(self):
        """keys() filters on prefix."""
        store = MemoryStore()
        store.set("results:2026-02-04:1", "x")
        store.set("results:2026-02-05:1", "x")
        store.set("user-state", "x")
        assert store.keys("results:2026-02-04:") == ["results:2026-02-04:1"]
        assert len(store.keys()) == 3

    def test_rejects_non_string(self):
        """Only strings may be stored."""
        with pytest.raises(StorageError):
            MemoryStore().set("a", 1)

    def test_quota_exceeded(self):
        """A write past the quota raises StorageError and stores nothing."""
        store = MemoryStore(quota_bytes=10)
        with pytest.raises(StorageError):
            store.set("key", "x" * 50)
        assert store.get("key") is None


class TestSQLiteStore:
    """Tests for the SQLite-backed store."""

    def test_round_trip(self, tmp_path):
        """Values persist across store instances."""
        path = tmp_path / "kv.db"
        SQLiteStore(path).set("user-state", '{"a": 1}')
        assert SQLiteStore(path).get("user-state") == '{"a": 1}'

    def test_overwrite(self, tmp_path):
        """set() on an existing key replaces the value."""
        store = SQLiteStore(tmp_path / "kv.db")
        store.set("k", "1")
        store.set("k", "2")
        assert store.get("k") == "2"
        assert store.keys() == ["k"]

    def test_keys_prefix_is_literal(self, tmp_path):
        """LIKE wildcards in the prefix are matched literally."""
        store = SQLiteStore(tmp_path / "kv.db")
        store.set("cache:a_b:1", "x")
        store.set("cache:axb:1", "x")
        assert store.keys("cache:a_b:") == ["cache:a_b:1"]

    def test_delete(self, tmp_path):
        store = SQLiteStore(tmp_path / "kv.db")
        store.set("k", "1")
        store.delete("k")
        assert store.get("k") is None


class TestCacheManager:
    """Tests for TTL caching, stale reads and eviction."""

    def test_get_before_expiry(self, cache):
        """A value is returned until its TTL passes."""
        assert cache.set("espn_NBA_scoreboard", [1, 2], 60)
        assert cache.get("espn_NBA_scoreboard") == [1, 2]

    def test_get_after_expiry_returns_none(self, cache, clock):
        """Expired entries read as a miss."""
        cache.set("k", "v", 60)
        clock.advance(61)
        assert cache.get("k") is None

    def test_stale_read_after_expiry(self, cache, clock):
        """get_stale ignores expiry (within the grace window)."""
        cache.set("k", {"games": 3}, 60)
        clock.advance(120)
        assert cache.get("k") is None
        assert cache.get_stale("k") == {"games": 3}

    def test_key_layout(self, cache, store):
        """Entries live under cache:<prefix>:<key> as JSON."""
        cache.set("odds_NBA", [], 600)
        raw = json.loads(store.get("cache:sportsiq:odds_NBA"))
        assert raw["value"] == []
        assert raw["expires_at"] == raw["written_at"] + 600

    def test_corrupt_entry_reads_as_miss(self, cache, store):
        """Unparseable JSON is treated as absent."""
        store.set("cache:sportsiq:bad", "{not json")
        assert cache.get("bad") is None
        assert cache.get_stale("bad") is None

    def test_clear_old_entries(self, cache, store, clock):
        """Entries past the grace period and corrupt entries are swept."""
        cache.set("old", 1, 60)
        cache.set("fresh", 2, 60)
        store.set("cache:sportsiq:corrupt", "???")
        clock.advance(60 + cache.grace_period + 1)
        cache.set("fresh", 2, 60)

        removed = cache.clear_old_entries()

        assert removed == 2
        assert cache.get("fresh") == 2
        assert store.get("cache:sportsiq:old") is None

    def test_failed_write_returns_false(self, clock):
        """A store error on write is logged, swept and reported as False."""
        store = MemoryStore(quota_bytes=200)
        cache = CacheManager(store, clock=clock)
        assert cache.set("big", "x" * 500, 60) is False
        assert cache.get("big") is None

    def test_unserializable_value(self, cache):
        """Values that are not JSON serializable are rejected without raising."""
        assert cache.set("obj", object(), 60) is False
