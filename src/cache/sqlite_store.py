# src/cache/sqlite_store.py — v2
"""SQLite-based response cache (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Keeps cached completions
across restarts. Rows are namespaced by store id so several proxies can
share one database file, each with its own capacity.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path

from pydantic import ValidationError

from anthropic_proxy.cache.base_cache_store import BaseCacheStore
from anthropic_proxy.core.models import CompletionResponse

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS response_cache (
    namespace TEXT NOT NULL,
    key TEXT NOT NULL,
    data TEXT NOT NULL,
    last_access INTEGER NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (namespace, key)
);
CREATE INDEX IF NOT EXISTS idx_namespace_access
    ON response_cache(namespace, last_access);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed LRU store.

    Recency is an integer access counter rather than a timestamp, so two
    entries never share the same position in the eviction order.
    """

    def __init__(
        self,
        db_path: Path | str,
        max_size: int = 100,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._max_size = max_size
        self._namespace = namespace
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)
        row = self._conn.execute(
            "SELECT MAX(last_access) FROM response_cache"
        ).fetchone()
        self._clock = row[0] or 0

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def namespace(self) -> str:
        return self._namespace

    async def get(self, key: str) -> CompletionResponse | None:
        """Retrieve a cached completion and mark it most recently used."""
        with self._lock:
            row = self._conn.execute(
                "SELECT data FROM response_cache WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            ).fetchone()
            if row is None:
                return None
            self._conn.execute(
                "UPDATE response_cache SET last_access = ? WHERE namespace = ? AND key = ?",
                (self._tick(), self._namespace, key),
            )
            self._conn.commit()

        try:
            return CompletionResponse.model_validate_json(row[0])
        except ValidationError as e:
            logger.warning("Dropping unreadable cache entry %s: %s", key[:16], e)
            await self.delete(key)
            return None

    async def put(self, key: str, response: CompletionResponse) -> None:
        """Store a completion (upsert), then trim the namespace to capacity."""
        with self._lock:
            self._conn.execute(
                """INSERT OR REPLACE INTO response_cache
                   (namespace, key, data, last_access)
                   VALUES (?, ?, ?, ?)""",
                (self._namespace, key, response.model_dump_json(), self._tick()),
            )
            cursor = self._conn.execute(
                """DELETE FROM response_cache
                   WHERE namespace = ? AND key IN (
                       SELECT key FROM response_cache
                       WHERE namespace = ?
                       ORDER BY last_access DESC
                       LIMIT -1 OFFSET ?
                   )""",
                (self._namespace, self._namespace, self._max_size),
            )
            if cursor.rowcount > 0:
                logger.debug("Evicted %d cache entries", cursor.rowcount)
            self._conn.commit()

    async def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM response_cache WHERE namespace = ? AND key = ?",
                (self._namespace, key),
            )
            self._conn.commit()

    async def size(self) -> int:
        with self._lock:
            row = self._conn.execute(
                "SELECT COUNT(*) FROM response_cache WHERE namespace = ?",
                (self._namespace,),
            ).fetchone()
        return int(row[0])

    async def clear(self) -> None:
        with self._lock:
            self._conn.execute(
                "DELETE FROM response_cache WHERE namespace = ?", (self._namespace,)
            )
            self._conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def _tick(self) -> int:
        self._clock += 1
        return self._clock
