"""RoadQuery Storage Backend - Abstract Record Storage Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from roadquery_core.query.state import CachedRecord

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """A storage backend operation failed."""


class StorageQuotaError(StorageError):
    """The backend has no room left for the record."""


class StorageUnavailableError(StorageError):
    """The storage medium cannot be reached or opened."""


@dataclass
class StorageConfig:
    """Storage backend configuration.

    Attributes:
        name: Backend name
        max_size: Maximum entries
        max_bytes: Maximum serialized size
        serializer: Serializer format name
    """

    name: str = "storage"
    max_size: Optional[int] = None
    max_bytes: Optional[int] = None
    serializer: str = "json"


@dataclass
class StorageStats:
    """Storage backend statistics.

    Attributes:
        reads: Number of read operations
        writes: Number of write operations
        deletes: Number of delete operations
        entry_count: Current entry count
        errors: Number of errors
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    entry_count: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()


class CacheBackend(ABC):
    """Abstract storage backend for cached endpoint records.

    Implementations provide different storage media:
    - MemoryStore: volatile in-process dictionary
    - FileStore: small persistent JSON documents
    - SqliteStore: large persistent SQLite table
    - RedisStore: shared Redis server

    Every operation is a coroutine so that backends doing I/O fit the same
    contract as the in-memory one. Keys arrive already namespaced by the
    engine; a backend instance may be shared by many endpoints.
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        """Initialize backend.

        Args:
            config: Storage configuration
        """
        self.config = config or StorageConfig()
        self._stats = StorageStats()

    @abstractmethod
    async def get(self, key: str) -> Optional[CachedRecord]:
        """Get record by key.

        Args:
            key: Namespaced cache key

        Returns:
            CachedRecord or None
        """

    @abstractmethod
    async def set(self, key: str, record: CachedRecord) -> None:
        """Store record, replacing any previous one.

        Args:
            key: Namespaced cache key
            record: Record to store

        Raises:
            StorageError: If the record could not be written
        """

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Remove record. Missing keys are ignored.

        Args:
            key: Namespaced cache key
        """

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove every record owned by this backend."""

    async def close(self) -> None:
        """Release resources held by the backend."""

    def get_stats(self) -> StorageStats:
        """Get storage statistics.

        Returns:
            StorageStats instance
        """
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = StorageStats()

    async def health_check(self) -> bool:
        """Check storage health with a write/read/remove cycle.

        Returns:
            True if healthy
        """
        test_key = "__health_check__"
        try:
            await self.set(test_key, CachedRecord(data="test", last_updated=0))
            result = await self.get(test_key)
            await self.remove(test_key)
            return result is not None
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False


__all__ = [
    "CacheBackend",
    "StorageConfig",
    "StorageStats",
    "StorageError",
    "StorageQuotaError",
    "StorageUnavailableError",
]
