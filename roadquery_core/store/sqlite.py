"""RoadQuery SQLite Store - Large Persistent Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from typing import Optional

from roadquery_core.protocol.serializer import get_serializer
from roadquery_core.query.state import CachedRecord
from roadquery_core.store.backend import (
    CacheBackend,
    StorageConfig,
    StorageError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

TABLE_NAME = "cache"


class SqliteStore(CacheBackend):
    """SQLite storage backend for bulk and binary records.

    Records live in a single ``cache(key, value)`` table and are encoded
    with MessagePack by default so ``bytes`` payloads round-trip. The
    blocking sqlite3 calls run in a worker thread.

    Example:
        store = SqliteStore("/var/cache/myapp/query.db")
        await store.set("query:tiles", CachedRecord(data=b"...", last_updated=0))
        record = await store.get("query:tiles")
    """

    def __init__(
        self,
        path: str = ":memory:",
        config: Optional[StorageConfig] = None,
    ):
        """Initialize SQLite store.

        Args:
            path: Database file path, or ":memory:"
            config: Storage configuration
        """
        super().__init__(config or StorageConfig(name="sqlite", serializer="msgpack"))
        self.path = path
        self._serializer = get_serializer(self.config.serializer)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    def _ensure_connected(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn

        try:
            conn = sqlite3.connect(self.path, check_same_thread=False)
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {TABLE_NAME} ("
                "key TEXT PRIMARY KEY, "
                "value BLOB NOT NULL)"
            )
            conn.commit()
        except sqlite3.Error as e:
            self._stats.record_error(str(e))
            raise StorageUnavailableError(f"Cannot open SQLite store {self.path}: {e}") from e

        self._conn = conn
        logger.info(f"Opened SQLite store at {self.path}")
        return conn

    async def get(self, key: str) -> Optional[CachedRecord]:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, record: CachedRecord) -> None:
        await asyncio.to_thread(self._set_sync, key, record)

    async def remove(self, key: str) -> None:
        removed = await asyncio.to_thread(
            self._execute, f"DELETE FROM {TABLE_NAME} WHERE key = ?", (key,)
        )
        if removed:
            self._stats.deletes += 1

    async def clear_all(self) -> None:
        await asyncio.to_thread(self._execute, f"DELETE FROM {TABLE_NAME}", ())

    async def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info(f"Closed SQLite store at {self.path}")

    def _get_sync(self, key: str) -> Optional[CachedRecord]:
        with self._lock:
            conn = self._ensure_connected()
            self._stats.reads += 1
            try:
                row = conn.execute(
                    f"SELECT value FROM {TABLE_NAME} WHERE key = ?", (key,)
                ).fetchone()
            except sqlite3.Error as e:
                self._stats.record_error(str(e))
                raise StorageError(f"SQLite read failed for {key}: {e}") from e

            if row is None:
                return None

            try:
                return self._serializer.load_record(bytes(row[0]))
            except ValueError as e:
                logger.error(f"Corrupt record for {key}, removing it: {e}")
                self._stats.record_error(str(e))
                conn.execute(f"DELETE FROM {TABLE_NAME} WHERE key = ?", (key,))
                conn.commit()
                return None

    def _set_sync(self, key: str, record: CachedRecord) -> None:
        try:
            payload = self._serializer.dump_record(record)
        except (TypeError, ValueError) as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Cannot serialize record for {key}: {e}") from e

        self._execute(
            f"INSERT OR REPLACE INTO {TABLE_NAME} (key, value) VALUES (?, ?)",
            (key, payload),
        )
        self._stats.writes += 1

    def _execute(self, sql: str, params: tuple) -> int:
        with self._lock:
            conn = self._ensure_connected()
            try:
                cursor = conn.execute(sql, params)
                conn.commit()
                return cursor.rowcount
            except sqlite3.Error as e:
                self._stats.record_error(str(e))
                raise StorageError(f"SQLite write failed: {e}") from e

    def size(self) -> int:
        """Get record count.

        Returns:
            Number of stored records
        """
        with self._lock:
            conn = self._ensure_connected()
            return conn.execute(f"SELECT COUNT(*) FROM {TABLE_NAME}").fetchone()[0]

    def __repr__(self) -> str:
        return f"SqliteStore(path={self.path!r})"


__all__ = ["SqliteStore"]
