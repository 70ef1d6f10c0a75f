"""RoadQuery Engine - Query Engine Facade.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Coroutine, Dict, List, Mapping, Optional, Set

from roadquery_core.metrics.collector import MetricsCollector, QueryMetrics
from roadquery_core.query.coordinator import RefetchCoordinator
from roadquery_core.query.registry import EndpointOptions, EndpointRegistry, Fetcher
from roadquery_core.query.signals import EnvironmentSignal, EnvironmentSignals
from roadquery_core.query.staleness import NEVER_STALE, validate_window
from roadquery_core.query.state import EndpointState, now_millis
from roadquery_core.query.state_store import EndpointStateStore
from roadquery_core.query.subscriptions import Listener, SubscriptionHub, Unsubscribe
from roadquery_core.store.backend import CacheBackend, StorageStats
from roadquery_core.store.factory import BackendSelector, create_backend
from roadquery_core.store.file import DEFAULT_MAX_BYTES
from roadquery_core.store.redis import RedisConfig

logger = logging.getLogger(__name__)


@dataclass
class QueryConfig:
    """Query engine configuration.

    Attributes:
        name: Engine name used in logs
        default_freshness_window: Seconds data stays fresh when an endpoint sets none
        default_backend: Backend selector for endpoints that set none
        namespace: Prefix for backend keys
        clone_data: Hand listeners deep copies of endpoint data
        file_path: Directory of the "file" backend
        file_max_bytes: Byte quota of the "file" backend
        sqlite_path: Database path of the "sqlite" backend
        redis: Settings of the "redis" backend
    """

    name: str = "query"
    default_freshness_window: float = NEVER_STALE
    default_backend: Any = "memory"
    namespace: str = "query"
    clone_data: bool = True
    file_path: str = ".roadquery"
    file_max_bytes: Optional[int] = DEFAULT_MAX_BYTES
    sqlite_path: str = ":memory:"
    redis: Optional[RedisConfig] = field(default=None)

    def __post_init__(self):
        validate_window(self.default_freshness_window)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QueryConfig":
        """Create from a plain mapping, ignoring unknown keys.

        Args:
            data: Configuration values

        Returns:
            QueryConfig instance
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if isinstance(values.get("redis"), Mapping):
            values["redis"] = RedisConfig(**values["redis"])
        return cls(**values)


class QueryEngine:
    """Data-fetching and caching engine.

    Owns its endpoint registry, state store, in-flight map and
    subscriptions; several engines can live in one process.

    Features:
    - Named endpoints with their own fetcher, freshness window and backend
    - Single-flight fetches per endpoint
    - Stale-while-revalidate: cached data stays visible while refetching
    - Warm start from persistent backends
    - Background refresh of observed endpoints on visibility and
      connectivity signals

    Example:
        engine = QueryEngine(QueryConfig(default_freshness_window=30))
        engine.start()

        await engine.define_endpoint("users", fetch_users, backend="sqlite")
        unsubscribe = engine.subscribe("users", render)

        await engine.refetch("users", force_refetch=True)
        state = engine.get_state("users")

        unsubscribe()
        await engine.aclose()
    """

    def __init__(
        self,
        config: Optional[QueryConfig] = None,
        signals: Optional[EnvironmentSignals] = None,
        clock: Callable[[], int] = now_millis,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize engine.

        Args:
            config: Engine configuration
            signals: Host environment signal source
            clock: Current time in epoch milliseconds
            metrics: Metrics collector
        """
        self.config = config or QueryConfig()
        self.signals = signals or EnvironmentSignals()
        self._metrics = metrics or MetricsCollector()

        self._registry = EndpointRegistry()
        self._states = EndpointStateStore(on_change=self._on_state_change)
        self._hub = SubscriptionHub(
            get_state=self._states.get,
            on_subscribe=self._on_subscribe,
            clone_data=self.config.clone_data,
            metrics=self._metrics,
        )
        self._coordinator = RefetchCoordinator(
            self._registry,
            self._states,
            metrics=self._metrics,
            clock=clock,
            namespace=self.config.namespace,
        )

        self._backends: Dict[str, CacheBackend] = {}
        self._background: Set[asyncio.Task] = set()
        self._started = False

    def start(self) -> None:
        """Register the environment signal handlers."""
        if self._started:
            return
        self.signals.add_listener(EnvironmentSignal.VISIBILITY_REGAINED, self._on_visibility_regained)
        self.signals.add_listener(EnvironmentSignal.CONNECTIVITY_REGAINED, self._on_connectivity_regained)
        self._started = True
        logger.info(f"Query engine {self.config.name} started")

    def stop(self) -> None:
        """Unregister the environment signal handlers."""
        if not self._started:
            return
        self.signals.remove_listener(EnvironmentSignal.VISIBILITY_REGAINED, self._on_visibility_regained)
        self.signals.remove_listener(EnvironmentSignal.CONNECTIVITY_REGAINED, self._on_connectivity_regained)
        self._started = False
        logger.info(f"Query engine {self.config.name} stopped")

    @property
    def started(self) -> bool:
        return self._started

    async def define_endpoint(
        self,
        key: str,
        fetcher: Fetcher,
        options: Optional[EndpointOptions] = None,
        *,
        freshness_window: Optional[float] = None,
        backend: Optional[BackendSelector] = None,
    ) -> None:
        """Register or replace an endpoint and warm-load its stored record.

        Never fetches directly. Endpoints that already have listeners get
        the same background staleness check a new subscription triggers.

        Args:
            key: Endpoint key
            fetcher: Zero-argument callable returning the data (or an awaitable of it)
            options: Endpoint options
            freshness_window: Shortcut for options.freshness_window
            backend: Shortcut for options.backend
        """
        if options is None:
            options = EndpointOptions(freshness_window=freshness_window, backend=backend)

        window = options.freshness_window
        if window is None:
            window = self.config.default_freshness_window
        selector = options.backend if options.backend is not None else self.config.default_backend

        resolved = self._resolve_backend(selector)

        # Registered only once the stored record is loaded
        record = await self._coordinator.load_record(key, resolved)
        definition = self._registry.define(
            key,
            fetcher,
            freshness_window=window,
            backend=resolved,
        )
        current = self._states.get(key)
        changes: Dict[str, Any] = {}
        if record is not None and (
            current.last_updated is None or record.last_updated > current.last_updated
        ):
            changes = {"data": record.data, "last_updated": record.last_updated}

        # Notify even without changes so early subscribers get a replay
        self._states.set(key, **changes)
        logger.info(
            f"Endpoint {key!r} defined (freshness_window={window}, "
            f"backend={definition.backend!r}, hydrated={bool(changes)})"
        )

        if self._hub.is_observed(key):
            self._spawn(self._coordinator.ensure_fresh(key, False))

    def subscribe(self, key: str, callback: Listener) -> Unsubscribe:
        """Listen to an endpoint's state.

        The callback receives the current state immediately; a staleness
        check then runs in the background and the callback hears about
        any fetch it starts.

        Args:
            key: Endpoint key
            callback: Listener receiving EndpointState snapshots

        Returns:
            Function removing the listener
        """
        return self._hub.subscribe(key, callback)

    async def refetch(self, key: str, force_refetch: bool = False) -> None:
        """Fetch an endpoint if stale, or unconditionally when forced.

        Fetch errors end up in the endpoint state; this never raises them.

        Args:
            key: Endpoint key
            force_refetch: Ignore the freshness window
        """
        await self._coordinator.ensure_fresh(key, force_refetch)

    async def invalidate(self, key: str) -> None:
        """Clear an endpoint's stored record and state without refetching.

        Args:
            key: Endpoint key
        """
        await self._coordinator.invalidate(key)

    async def invalidate_all(self) -> None:
        """Invalidate every defined endpoint."""
        for key in self._registry.keys():
            await self._coordinator.invalidate(key)

    def get_state(self, key: str) -> EndpointState:
        """Get an endpoint's current state without subscribing.

        Unknown keys yield the empty default state.

        Args:
            key: Endpoint key

        Returns:
            EndpointState snapshot
        """
        if key not in self._registry:
            logger.debug(f"get_state called for undefined endpoint {key!r}")
        return self._hub.snapshot(self._states.get(key))

    def observed_keys(self) -> Set[str]:
        """Get endpoint keys with at least one listener."""
        return self._hub.observed_keys()

    def endpoints(self) -> List[str]:
        """Get defined endpoint keys."""
        return self._registry.keys()

    def get_stats(self) -> QueryMetrics:
        """Get engine metrics."""
        return self._metrics.get_metrics()

    def backend_stats(self) -> Dict[str, StorageStats]:
        """Get statistics of the backends created by this engine."""
        return {name: backend.get_stats() for name, backend in self._backends.items()}

    async def drain(self) -> None:
        """Wait for background staleness checks and refreshes to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        """Stop, finish background work and close engine-created backends."""
        self.stop()
        await self.drain()
        for name, backend in self._backends.items():
            try:
                await backend.close()
            except Exception as e:
                logger.error(f"Error closing {name} backend: {e}")
        self._backends.clear()

    def _resolve_backend(self, selector: BackendSelector) -> CacheBackend:
        if isinstance(selector, CacheBackend):
            return selector

        name = getattr(selector, "value", selector)
        backend = self._backends.get(name)
        if backend is None:
            backend = create_backend(name, self.config)
            self._backends[name] = backend
        return backend

    def _on_state_change(self, key: str, state: EndpointState) -> None:
        self._hub.notify(key, state)

    def _on_subscribe(self, key: str) -> None:
        if key not in self._registry:
            logger.warning(
                f"Subscribed to {key!r} before it was defined; "
                "it will be checked after define_endpoint and on the next trigger"
            )
            return
        self._spawn(self._coordinator.ensure_fresh(key, False))

    def _on_visibility_regained(self) -> None:
        logger.info("Visibility regained. Refreshing observed stale endpoints.")
        self._refresh_observed()

    def _on_connectivity_regained(self) -> None:
        logger.info("Connectivity restored. Refreshing observed stale endpoints.")
        self._refresh_observed()

    def _refresh_observed(self) -> None:
        keys = [key for key in self._hub.observed_keys() if key in self._registry]
        self._spawn(self._coordinator.refresh_observed(keys))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop; background refresh skipped")
            return None

        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def __aenter__(self) -> "QueryEngine":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return (
            f"QueryEngine(name={self.config.name!r}, endpoints={len(self._registry)}, "
            f"observed={len(self._hub.observed_keys())})"
        )


__all__ = ["QueryEngine", "QueryConfig"]
