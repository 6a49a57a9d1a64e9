"""
cache/store.py -- SQLite-backed key-value cache with per-key TTL.

Stores JSON payloads with an absolute expiry timestamp. Expired entries are
treated as absent and deleted lazily on read; purge_expired() trims the rest.

Pattern invalidation is an explicit registry, not wildcard matching. A caller
that wants a key swept later names the pattern when it writes the key:

    cache.set("cities:paged:1:10:null:name:asc", page, ttl=1800, patterns=("cities:paged",))
    cache.remove_by_pattern("cities:paged")   # clears every key registered above

The cache fails open. Any sqlite or serialization error in get/set/remove is
logged and swallowed: get() returns None, writes become no-ops, and the caller
falls through to the source of truth.

One connection is shared by every request thread, so all access goes through
a lock.

Usage:
    cache = CacheStore()
    data = cache.get("cities:all")        # returns payload or None
    cache.set("cities:all", data, ttl=4 * 3600)
    cache.purge_expired()
"""

import json
import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Any, Iterable, Optional

from core.config import get_settings

logger = logging.getLogger("citygarage.cache")

_DDL = """
CREATE TABLE IF NOT EXISTS cache_entries (
    cache_key   TEXT PRIMARY KEY,
    data        TEXT NOT NULL,
    expires_at  REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS cache_patterns (
    pattern     TEXT NOT NULL,
    cache_key   TEXT NOT NULL,
    PRIMARY KEY (pattern, cache_key)
);
"""


class CacheStore:
    def __init__(self, db_path: Optional[str] = None, default_ttl: Optional[int] = None) -> None:
        settings = get_settings()
        path = db_path or settings.cache_db_path
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.default_ttl = default_ttl if default_ttl is not None else settings.cache_default_ttl_seconds
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_DDL)
        self._conn.commit()

    def get(self, key: str) -> Optional[Any]:
        """Return the cached payload for key if present and not expired."""
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT data, expires_at FROM cache_entries WHERE cache_key = ?",
                    (key,),
                ).fetchone()
                if row is None:
                    logger.debug("Cache MISS: %s", key)
                    return None
                data, expires_at = row
                if time.time() >= expires_at:
                    self._delete(key)
                    logger.debug("Cache EXPIRED: %s", key)
                    return None
            logger.debug("Cache HIT: %s", key)
            return json.loads(data)
        except (sqlite3.Error, ValueError):
            logger.exception("Cache GET failed for key %s", key)
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None, patterns: Iterable[str] = ()) -> None:
        """Store value under key, replacing any existing entry.

        ttl is in seconds and defaults to default_ttl (30 minutes). Each name in
        patterns registers key for a later remove_by_pattern() sweep.
        """
        duration = ttl if ttl is not None else self.default_ttl
        try:
            payload = json.dumps(value)
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO cache_entries (cache_key, data, expires_at) VALUES (?, ?, ?)",
                    (key, payload, time.time() + duration),
                )
                self._conn.executemany(
                    "INSERT OR IGNORE INTO cache_patterns (pattern, cache_key) VALUES (?, ?)",
                    [(pattern, key) for pattern in patterns],
                )
                self._conn.commit()
            logger.debug("Cache SET: %s (ttl=%ds)", key, duration)
        except (sqlite3.Error, TypeError, ValueError):
            logger.exception("Cache SET failed for key %s", key)

    def remove(self, key: str) -> None:
        try:
            with self._lock:
                self._delete(key)
            logger.debug("Cache REMOVE: %s", key)
        except sqlite3.Error:
            logger.exception("Cache REMOVE failed for key %s", key)

    def remove_by_pattern(self, pattern: str) -> int:
        """Remove every key registered under pattern. Returns the number removed.

        Unknown patterns remove nothing.
        """
        try:
            with self._lock:
                cursor = self._conn.execute(
                    "DELETE FROM cache_entries WHERE cache_key IN "
                    "(SELECT cache_key FROM cache_patterns WHERE pattern = ?)",
                    (pattern,),
                )
                self._conn.execute("DELETE FROM cache_patterns WHERE pattern = ?", (pattern,))
                self._conn.commit()
            logger.info("Cache pattern REMOVE: %s (%d keys)", pattern, cursor.rowcount)
            return cursor.rowcount
        except sqlite3.Error:
            logger.exception("Cache pattern REMOVE failed for pattern %s", pattern)
            return 0

    def purge_expired(self) -> int:
        """Delete all expired entries. Returns number of rows removed."""
        try:
            with self._lock:
                cursor = self._conn.execute("DELETE FROM cache_entries WHERE expires_at <= ?", (time.time(),))
                self._conn.execute(
                    "DELETE FROM cache_patterns WHERE cache_key NOT IN (SELECT cache_key FROM cache_entries)"
                )
                self._conn.commit()
            return cursor.rowcount
        except sqlite3.Error:
            logger.exception("Cache purge failed")
            return 0

    def _delete(self, key: str) -> None:
        # Caller holds the lock.
        self._conn.execute("DELETE FROM cache_entries WHERE cache_key = ?", (key,))
        self._conn.execute("DELETE FROM cache_patterns WHERE cache_key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
