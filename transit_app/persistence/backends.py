"""Key/value storage backends for the month and ephemeris caches."""

import asyncio
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

import orjson

from ..errors import CacheUnavailableError
from ..logging.config import get_logger


@dataclass(frozen=True)
class CacheEntry:
    """Stored value with the metadata the cache policy needs."""
    key: str
    payload: Any
    timestamp: float                      # Write time, epoch seconds
    version: int


class CacheBackend(ABC):
    """
    Abstract key/value store.

    Writes are whole-value replacements. Backends raise
    CacheUnavailableError when the underlying store fails.
    """

    @abstractmethod
    async def read(self, key: str) -> Optional[CacheEntry]:
        """Return the entry stored under ``key``, if any."""

    @abstractmethod
    async def write(self, entry: CacheEntry) -> None:
        """Store ``entry``, replacing any previous value for its key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    async def entries(self) -> list[CacheEntry]:
        """Metadata of every entry, oldest first. Payloads may be omitted."""

    async def close(self) -> None:
        """Release backend resources."""
        return None


class MemoryCacheBackend(CacheBackend):
    """Process-local dictionary store."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def read(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def write(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    async def entries(self) -> list[CacheEntry]:
        return sorted(self._entries.values(), key=lambda e: e.timestamp)

    def __len__(self) -> int:
        return len(self._entries)


class SqliteCacheBackend(CacheBackend):
    """
    SQLite-backed store, one table per cache.

    Blocking sqlite3 calls run in a worker thread so the event loop is never
    held up by disk I/O.
    """

    def __init__(self, db_path: str = "transit_cache.db", table: str = "cache"):
        if not table.isidentifier():
            raise ValueError(f"Invalid table name: {table!r}")

        self.db_path = Path(db_path)
        self.table = table
        self.logger = get_logger("cache.sqlite").bind(table=table)
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    key TEXT PRIMARY KEY,
                    payload BLOB NOT NULL,
                    timestamp REAL NOT NULL,
                    version INTEGER NOT NULL
                )
            """)

            conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table}_timestamp ON {self.table}(timestamp)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", error=str(e))
            raise
        finally:
            if conn:
                conn.close()

    def _run(self, operation: str, key: Optional[str], func: Any, *args: Any) -> Any:
        """Run a blocking operation under the lock, mapping sqlite errors."""
        with self._lock:
            try:
                return func(*args)
            except sqlite3.Error as e:
                raise CacheUnavailableError(
                    f"Cache {operation} failed: {e}",
                    operation=operation,
                    key=key,
                ) from e

    def _read_sync(self, key: str) -> Optional[CacheEntry]:
        with self._get_connection() as conn:
            row = conn.execute(f"""
                SELECT key, payload, timestamp, version FROM {self.table} WHERE key = ?
            """, (key,)).fetchone()

        if row is None:
            return None

        try:
            payload = orjson.loads(row["payload"])
        except orjson.JSONDecodeError as e:
            raise CacheUnavailableError(
                f"Corrupt cache payload: {e}", operation="read", key=key
            ) from e

        return CacheEntry(
            key=row["key"],
            payload=payload,
            timestamp=row["timestamp"],
            version=row["version"],
        )

    def _write_sync(self, entry: CacheEntry) -> None:
        with self._get_connection() as conn:
            conn.execute(f"""
                INSERT OR REPLACE INTO {self.table} (key, payload, timestamp, version)
                VALUES (?, ?, ?, ?)
            """, (entry.key, orjson.dumps(entry.payload), entry.timestamp, entry.version))
            conn.commit()

    def _delete_sync(self, key: str) -> None:
        with self._get_connection() as conn:
            conn.execute(f"DELETE FROM {self.table} WHERE key = ?", (key,))
            conn.commit()

    def _clear_sync(self) -> None:
        with self._get_connection() as conn:
            conn.execute(f"DELETE FROM {self.table}")
            conn.commit()

    def _entries_sync(self) -> list[CacheEntry]:
        with self._get_connection() as conn:
            rows = conn.execute(f"""
                SELECT key, timestamp, version FROM {self.table} ORDER BY timestamp
            """).fetchall()

        return [
            CacheEntry(key=row["key"], payload=None,
                       timestamp=row["timestamp"], version=row["version"])
            for row in rows
        ]

    async def read(self, key: str) -> Optional[CacheEntry]:
        return await asyncio.to_thread(self._run, "read", key, self._read_sync, key)

    async def write(self, entry: CacheEntry) -> None:
        await asyncio.to_thread(self._run, "write", entry.key, self._write_sync, entry)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._run, "delete", key, self._delete_sync, key)

    async def clear(self) -> None:
        await asyncio.to_thread(self._run, "clear", None, self._clear_sync)

    async def entries(self) -> list[CacheEntry]:
        return await asyncio.to_thread(self._run, "entries", None, self._entries_sync)
