"""Store module - Storage backends for cached endpoint records."""

from roadquery_core.store.backend import (
    CacheBackend,
    StorageConfig,
    StorageError,
    StorageQuotaError,
    StorageStats,
    StorageUnavailableError,
)
from roadquery_core.store.memory import MemoryStore
from roadquery_core.store.file import FileStore
from roadquery_core.store.sqlite import SqliteStore
from roadquery_core.store.redis import RedisConfig, RedisStore
from roadquery_core.store.factory import BackendKind, BackendSelector, create_backend

__all__ = [
    "CacheBackend",
    "StorageConfig",
    "StorageStats",
    "StorageError",
    "StorageQuotaError",
    "StorageUnavailableError",
    "MemoryStore",
    "FileStore",
    "SqliteStore",
    "RedisStore",
    "RedisConfig",
    "BackendKind",
    "BackendSelector",
    "create_backend",
]
