"""Query module - Endpoint definitions, state, fetching and subscriptions."""

from roadquery_core.query.state import (
    CachedRecord,
    EndpointState,
    EndpointStatus,
    EMPTY_STATE,
    now_millis,
)
from roadquery_core.query.staleness import NEVER_STALE, is_stale
from roadquery_core.query.registry import (
    EndpointDefinition,
    EndpointOptions,
    EndpointRegistry,
)
from roadquery_core.query.state_store import EndpointStateStore
from roadquery_core.query.subscriptions import SubscriptionHub
from roadquery_core.query.signals import EnvironmentSignal, EnvironmentSignals
from roadquery_core.query.coordinator import RefetchCoordinator
from roadquery_core.query.engine import QueryConfig, QueryEngine

__all__ = [
    "CachedRecord",
    "EndpointState",
    "EndpointStatus",
    "EMPTY_STATE",
    "now_millis",
    "NEVER_STALE",
    "is_stale",
    "EndpointDefinition",
    "EndpointOptions",
    "EndpointRegistry",
    "EndpointStateStore",
    "SubscriptionHub",
    "EnvironmentSignal",
    "EnvironmentSignals",
    "RefetchCoordinator",
    "QueryConfig",
    "QueryEngine",
]
