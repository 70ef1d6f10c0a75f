"""RoadQuery - Data Fetching and Caching Engine.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A reactive data-fetching layer with:
- Named endpoints, each with its own fetcher and freshness window
- Single-flight request deduplication
- Staleness-gated and forced refetching
- Pluggable storage backends (memory, file, SQLite, Redis)
- Subscriptions with immediate state replay
- Background refresh on visibility and connectivity signals

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        RoadQuery Engine                         │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌──────────────┐  ┌──────────────┐  ┌──────────────┐          │
    │  │ Subscription │  │   Endpoint   │  │  Environment │   API    │
    │  │     Hub      │  │   Registry   │  │   Signals    │   LAYER  │
    │  └──────┬───────┘  └──────┬───────┘  └──────┬───────┘          │
    │         │                 │                 │                   │
    │  ┌──────┴─────────────────┴─────────────────┴──────┐           │
    │  │              Refetch Coordinator                 │   FETCH   │
    │  │   single-flight · staleness policy · triggers    │   LAYER   │
    │  └──────────────────────┬───────────────────────────┘           │
    │                         │                                       │
    │  ┌──────────────────────┴───────────────────────────┐           │
    │  │              Endpoint State Store                 │   STATE  │
    │  └──────────────────────┬───────────────────────────┘           │
    │                         │                                       │
    │  ┌──────────────────────┴───────────────────────────┐           │
    │  │              Storage Backends                     │           │
    │  │   ┌────────┐  ┌────────┐  ┌────────┐  ┌───────┐   │  STORAGE │
    │  │   │ Memory │  │  File  │  │ SQLite │  │ Redis │   │  LAYER   │
    │  │   └────────┘  └────────┘  └────────┘  └───────┘   │           │
    │  └──────────────────────────────────────────────────┘           │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from roadquery_core import QueryEngine, QueryConfig

    engine = QueryEngine(QueryConfig(default_freshness_window=60))
    engine.start()

    await engine.define_endpoint("users", fetch_users, backend="file")

    unsubscribe = engine.subscribe("users", lambda state: print(state.data))
    await engine.refetch("users")

    # Host signals trigger background refresh of observed endpoints
    from roadquery_core import EnvironmentSignal
    engine.signals.emit(EnvironmentSignal.CONNECTIVITY_REGAINED)

    unsubscribe()
    await engine.aclose()
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from roadquery_core.query.state import (
    CachedRecord,
    EndpointState,
    EndpointStatus,
)
from roadquery_core.query.staleness import NEVER_STALE, is_stale
from roadquery_core.query.registry import EndpointOptions
from roadquery_core.query.signals import EnvironmentSignal, EnvironmentSignals
from roadquery_core.query.engine import QueryConfig, QueryEngine
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
from roadquery_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
)
from roadquery_core.metrics.collector import (
    MetricsCollector,
    QueryMetrics,
)

__all__ = [
    # Engine
    "QueryEngine",
    "QueryConfig",
    "EndpointOptions",
    "EndpointState",
    "EndpointStatus",
    "CachedRecord",
    "NEVER_STALE",
    "is_stale",
    "EnvironmentSignal",
    "EnvironmentSignals",
    # Storage
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
    # Protocol
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    # Metrics
    "MetricsCollector",
    "QueryMetrics",
]
