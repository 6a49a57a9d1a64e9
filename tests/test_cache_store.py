"""Unit tests for cache/store.py -- TTL, explicit pattern registry, fail-open.

Covers:
- set/get round trip of JSON payloads; overwrite replaces
- Expired entries are invisible and purge_expired() removes them
- remove_by_pattern() clears only keys registered under that pattern
- Closed connection / unserializable payload never raise to the caller
"""

import logging

from cache.store import CacheStore


class TestGetSet:
    def test_miss_returns_none(self, cache: CacheStore) -> None:
        assert cache.get("nope") is None

    def test_set_then_get(self, cache: CacheStore) -> None:
        cache.set("cities:all", [{"id": 1, "name": "Ankara"}])
        assert cache.get("cities:all") == [{"id": 1, "name": "Ankara"}]

    def test_overwrite(self, cache: CacheStore) -> None:
        cache.set("k", {"v": 1})
        cache.set("k", {"v": 2})
        assert cache.get("k") == {"v": 2}

    def test_default_ttl_is_thirty_minutes(self) -> None:
        store = CacheStore(":memory:")
        try:
            assert store.default_ttl == 30 * 60
        finally:
            store.close()

    def test_expired_entry_is_absent(self, cache: CacheStore) -> None:
        cache.set("short", "value", ttl=0)
        assert cache.get("short") is None

    def test_purge_expired(self, cache: CacheStore) -> None:
        cache.set("old", 1, ttl=0)
        cache.set("fresh", 2, ttl=60)
        assert cache.purge_expired() == 1
        assert cache.get("fresh") == 2

    def test_remove(self, cache: CacheStore) -> None:
        cache.set("k", 1)
        cache.remove("k")
        assert cache.get("k") is None
        cache.remove("k")  # idempotent


class TestRemoveByPattern:
    def test_clears_registered_keys_only(self, cache: CacheStore) -> None:
        cache.set("cities:paged:1:10:null:name:asc", {"p": 1}, patterns=("cities:paged",))
        cache.set("cities:paged:2:10:null:name:asc", {"p": 2}, patterns=("cities:paged",))
        cache.set("cities:all", [1, 2])
        # Same prefix, never registered: not swept.
        cache.set("cities:paged:unregistered", {"p": 0})

        removed = cache.remove_by_pattern("cities:paged")

        assert removed == 2
        assert cache.get("cities:paged:1:10:null:name:asc") is None
        assert cache.get("cities:paged:2:10:null:name:asc") is None
        assert cache.get("cities:all") == [1, 2]
        assert cache.get("cities:paged:unregistered") == {"p": 0}

    def test_unknown_pattern_removes_nothing(self, cache: CacheStore) -> None:
        cache.set("k", 1, patterns=("group-a",))
        assert cache.remove_by_pattern("group-b") == 0
        assert cache.get("k") == 1

    def test_registry_is_cleared_after_sweep(self, cache: CacheStore) -> None:
        cache.set("k", 1, patterns=("g",))
        cache.remove_by_pattern("g")
        cache.set("k", 2)  # re-set without registering
        assert cache.remove_by_pattern("g") == 0
        assert cache.get("k") == 2


class TestFailOpen:
    def test_closed_connection_get_returns_none(self, caplog) -> None:
        store = CacheStore(":memory:")
        store.set("k", 1)
        store.close()
        with caplog.at_level(logging.ERROR, logger="citygarage.cache"):
            assert store.get("k") is None
            store.set("k", 2)
            store.remove("k")
            assert store.remove_by_pattern("g") == 0
        assert "Cache GET failed" in caplog.text

    def test_unserializable_value_is_skipped(self, cache: CacheStore) -> None:
        cache.set("bad", object())
        assert cache.get("bad") is None
