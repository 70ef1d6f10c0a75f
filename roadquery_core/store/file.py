"""RoadQuery File Store - Small Persistent Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import threading
from pathlib import Path
from typing import Optional

from roadquery_core.protocol.serializer import get_serializer
from roadquery_core.query.state import CachedRecord
from roadquery_core.store.backend import (
    CacheBackend,
    StorageConfig,
    StorageError,
    StorageQuotaError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 5 * 1024 * 1024


class FileStore(CacheBackend):
    """File-based storage backend for small records.

    Keeps one serialized document per key under a sharded directory and
    enforces a total byte quota, in the spirit of a browser's local
    storage: good for preferences, tokens and small lookups that should
    survive a restart.

    Features:
    - Persistent storage
    - Sharded directories, created on first write
    - Atomic writes
    - Byte quota with StorageQuotaError
    - Corrupt documents are dropped and read as a miss

    Example:
        store = FileStore("/var/cache/myapp")
        await store.set("query:prefs", CachedRecord(data={}, last_updated=0))
        record = await store.get("query:prefs")
    """

    SHARD_COUNT = 256
    SUFFIX = ".rec"

    def __init__(
        self,
        base_path: str,
        config: Optional[StorageConfig] = None,
    ):
        """Initialize file store.

        Args:
            base_path: Base directory for record files
            config: Storage configuration
        """
        super().__init__(
            config or StorageConfig(name="file", max_bytes=DEFAULT_MAX_BYTES)
        )
        self.base_path = Path(base_path)
        self._serializer = get_serializer(self.config.serializer)
        self._lock = threading.RLock()

    def _get_shard(self, key: str) -> str:
        hash_value = hashlib.md5(key.encode()).hexdigest()
        shard_index = int(hash_value[:2], 16) % self.SHARD_COUNT
        return f"{shard_index:02x}"

    def _get_path(self, key: str) -> Path:
        # Hashed filename keeps arbitrary endpoint keys filesystem-safe
        filename = hashlib.sha256(key.encode()).hexdigest() + self.SUFFIX
        return self.base_path / self._get_shard(key) / filename

    async def get(self, key: str) -> Optional[CachedRecord]:
        return await asyncio.to_thread(self._get_sync, key)

    async def set(self, key: str, record: CachedRecord) -> None:
        await asyncio.to_thread(self._set_sync, key, record)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove_sync, key)

    async def clear_all(self) -> None:
        await asyncio.to_thread(self._clear_sync)

    def _get_sync(self, key: str) -> Optional[CachedRecord]:
        path = self._get_path(key)

        with self._lock:
            self._stats.reads += 1
            try:
                raw = path.read_bytes()
            except FileNotFoundError:
                return None
            except OSError as e:
                self._stats.record_error(str(e))
                raise StorageUnavailableError(f"Cannot read {key}: {e}") from e

            try:
                return self._serializer.load_record(raw)
            except ValueError as e:
                logger.error(f"Corrupt record for {key}, removing it: {e}")
                self._stats.record_error(str(e))
                path.unlink(missing_ok=True)
                return None

    def _set_sync(self, key: str, record: CachedRecord) -> None:
        path = self._get_path(key)
        temp_path = path.with_suffix(".tmp")

        try:
            payload = self._serializer.dump_record(record)
        except (TypeError, ValueError) as e:
            self._stats.record_error(str(e))
            raise StorageError(f"Cannot serialize record for {key}: {e}") from e

        with self._lock:
            if self.config.max_bytes is not None:
                existing = path.stat().st_size if path.exists() else 0
                projected = self.disk_usage() - existing + len(payload)
                if projected > self.config.max_bytes:
                    self._stats.record_error("quota exceeded")
                    raise StorageQuotaError(
                        f"Writing {key} needs {projected} bytes, "
                        f"quota is {self.config.max_bytes}"
                    )

            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                temp_path.write_bytes(payload)
                os.replace(temp_path, path)
            except OSError as e:
                self._stats.record_error(str(e))
                temp_path.unlink(missing_ok=True)
                raise StorageUnavailableError(f"Cannot write {key}: {e}") from e

            self._stats.writes += 1

    def _remove_sync(self, key: str) -> None:
        path = self._get_path(key)

        with self._lock:
            try:
                path.unlink()
                self._stats.deletes += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                self._stats.record_error(str(e))
                raise StorageUnavailableError(f"Cannot delete {key}: {e}") from e

    def _clear_sync(self) -> None:
        count = 0
        with self._lock:
            for file_path in self._record_files():
                file_path.unlink(missing_ok=True)
                count += 1
        logger.debug(f"Cleared {count} records from {self.base_path}")

    def _record_files(self):
        if not self.base_path.is_dir():
            return
        for shard_dir in self.base_path.iterdir():
            if shard_dir.is_dir():
                for file_path in shard_dir.iterdir():
                    if file_path.is_file() and file_path.suffix == self.SUFFIX:
                        yield file_path

    def size(self) -> int:
        """Get record count.

        Returns:
            Number of stored records
        """
        return sum(1 for _ in self._record_files())

    def disk_usage(self) -> int:
        """Get total size of stored records.

        Returns:
            Size in bytes
        """
        return sum(p.stat().st_size for p in self._record_files())

    def __repr__(self) -> str:
        return f"FileStore(path={self.base_path})"


__all__ = ["FileStore", "DEFAULT_MAX_BYTES"]
