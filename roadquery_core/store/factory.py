"""RoadQuery Backend Factory - Backend Selector Resolution.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Union

from roadquery_core.store.backend import CacheBackend, StorageConfig
from roadquery_core.store.file import FileStore
from roadquery_core.store.memory import MemoryStore
from roadquery_core.store.redis import RedisConfig, RedisStore
from roadquery_core.store.sqlite import SqliteStore

if TYPE_CHECKING:
    from roadquery_core.query.engine import QueryConfig

logger = logging.getLogger(__name__)


class BackendKind(str, Enum):
    """Built-in backend selectors."""

    MEMORY = "memory"
    FILE = "file"
    SQLITE = "sqlite"
    REDIS = "redis"


BackendSelector = Union[str, BackendKind, CacheBackend]


def create_backend(kind: Union[str, BackendKind], config: "QueryConfig") -> CacheBackend:
    """Build a backend for a selector name.

    Args:
        kind: Backend selector name
        config: Engine configuration holding backend locations

    Returns:
        New CacheBackend instance

    Raises:
        ValueError: If the selector is unknown
    """
    try:
        kind = BackendKind(kind)
    except ValueError:
        raise ValueError(
            f"Unknown backend {kind!r}; expected one of "
            f"{[k.value for k in BackendKind]} or a CacheBackend instance"
        ) from None

    if kind is BackendKind.MEMORY:
        backend: CacheBackend = MemoryStore()
    elif kind is BackendKind.FILE:
        backend = FileStore(
            config.file_path,
            StorageConfig(name="file", max_bytes=config.file_max_bytes),
        )
    elif kind is BackendKind.SQLITE:
        backend = SqliteStore(config.sqlite_path)
    else:
        backend = RedisStore(config.redis or RedisConfig())

    logger.debug(f"Created {kind.value} backend: {backend!r}")
    return backend


__all__ = ["BackendKind", "BackendSelector", "create_backend"]
