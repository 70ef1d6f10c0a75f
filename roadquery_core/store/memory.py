"""RoadQuery Memory Store - Volatile Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from roadquery_core.query.state import CachedRecord
from roadquery_core.store.backend import CacheBackend, StorageConfig, StorageQuotaError

logger = logging.getLogger(__name__)


class MemoryStore(CacheBackend):
    """In-memory storage backend.

    The simplest and fastest option, keeping records in a dictionary.
    Contents are lost when the process exits.

    Example:
        store = MemoryStore(StorageConfig(max_size=1000))
        await store.set("query:users", CachedRecord(data=[], last_updated=0))
        record = await store.get("query:users")
    """

    def __init__(self, config: Optional[StorageConfig] = None):
        """Initialize memory store.

        Args:
            config: Storage configuration
        """
        super().__init__(config or StorageConfig(name="memory"))
        self._data: Dict[str, CachedRecord] = {}

    async def get(self, key: str) -> Optional[CachedRecord]:
        self._stats.reads += 1
        return self._data.get(key)

    async def set(self, key: str, record: CachedRecord) -> None:
        if self.config.max_size:
            if key not in self._data and len(self._data) >= self.config.max_size:
                self._stats.record_error("max_size reached")
                raise StorageQuotaError(
                    f"MemoryStore is full ({self.config.max_size} entries)"
                )

        self._data[key] = record
        self._stats.writes += 1
        self._stats.entry_count = len(self._data)

    async def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._stats.deletes += 1
            self._stats.entry_count = len(self._data)

    async def clear_all(self) -> None:
        count = len(self._data)
        self._data.clear()
        self._stats.entry_count = 0
        logger.debug(f"Cleared {count} records from memory")

    def keys(self) -> List[str]:
        """Get all stored keys."""
        return list(self._data.keys())

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MemoryStore(entries={len(self._data)})"


__all__ = ["MemoryStore"]
