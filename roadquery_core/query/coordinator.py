"""RoadQuery Coordinator - Fetch Orchestration with Single-Flight.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Callable, Dict, Iterable, Optional

from roadquery_core.metrics.collector import MetricsCollector, Timer
from roadquery_core.query.registry import EndpointDefinition, EndpointRegistry
from roadquery_core.query.staleness import is_stale
from roadquery_core.query.state import CachedRecord, now_millis
from roadquery_core.query.state_store import EndpointStateStore
from roadquery_core.store.backend import CacheBackend

logger = logging.getLogger(__name__)


class RefetchCoordinator:
    """Runs endpoint fetches.

    - At most one fetch per key is in flight; concurrent callers wait on
      the same task and observe the same outcome
    - Non-forced requests are gated by the endpoint's freshness window
    - Fetch failures are recorded in state, never raised to callers
    - Storage failures are logged and the engine keeps going memory-only

    Example:
        coordinator = RefetchCoordinator(registry, states)
        await coordinator.ensure_fresh("users")
        await coordinator.ensure_fresh("users", force=True)
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        states: EndpointStateStore,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], int] = now_millis,
        namespace: str = "query",
    ):
        """Initialize coordinator.

        Args:
            registry: Endpoint definitions
            states: Endpoint state store
            metrics: Metrics collector
            clock: Current time in epoch milliseconds
            namespace: Prefix for backend keys
        """
        self._registry = registry
        self._states = states
        self._metrics = metrics or MetricsCollector()
        self._clock = clock
        self._namespace = namespace
        self._in_flight: Dict[str, asyncio.Task] = {}

    def storage_key(self, key: str) -> str:
        """Backend key for an endpoint."""
        return f"{self._namespace}:{key}"

    def is_in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def in_flight_keys(self):
        return list(self._in_flight.keys())

    async def ensure_fresh(self, key: str, force: bool = False) -> None:
        """Fetch an endpoint if it is stale or if forced.

        Args:
            key: Endpoint key
            force: Skip the freshness check
        """
        definition = self._registry.get(key)
        if definition is None:
            logger.warning(f"Cannot refetch {key!r}: endpoint not defined")
            return

        if not force:
            state = self._states.get(key)
            if not is_stale(state.last_updated, definition.freshness_window, self._clock()):
                self._metrics.record_fresh_skip()
                logger.debug(f"Skipping fetch for {key!r}, data is still fresh")
                return

        task = self._in_flight.get(key)
        if task is not None:
            self._metrics.record_deduplicated()
            logger.debug(f"Joining in-flight fetch for {key!r}")
        else:
            task = asyncio.get_running_loop().create_task(
                self._run_fetch(key, definition),
                name=f"roadquery-fetch-{key}",
            )
            self._in_flight[key] = task
            self._states.set(key, is_loading=True, is_error=False, error=None)

        # Shielded so a cancelled waiter leaves the shared fetch running
        await asyncio.shield(task)

    async def refresh_observed(self, keys: Iterable[str]) -> None:
        """Staleness-gated refresh of several endpoints at once.

        Args:
            keys: Endpoint keys to check
        """
        keys = list(keys)
        if not keys:
            return
        logger.debug(f"Refreshing {len(keys)} observed endpoints")
        await asyncio.gather(*(self.ensure_fresh(key) for key in keys))

    async def _run_fetch(self, key: str, definition: EndpointDefinition) -> None:
        task = asyncio.current_task()
        self._metrics.record_fetch()

        try:
            try:
                with Timer(self._metrics):
                    result = definition.fetcher()
                    if inspect.isawaitable(result):
                        result = await result
            except asyncio.CancelledError:
                self._states.set(key, is_loading=False)
                raise
            except Exception as e:
                self._metrics.record_fetch_error()
                logger.error(f"Error fetching endpoint {key!r}: {e}")
                # Previous data and last_updated stay visible next to the error
                self._states.set(key, is_loading=False, is_error=True, error=e)
                return

            record = CachedRecord(data=result, last_updated=self._clock())
            self._states.set(
                key,
                data=record.data,
                last_updated=record.last_updated,
                is_loading=False,
                is_error=False,
                error=None,
            )
            logger.info(f"Endpoint {key!r} fetched successfully")
            # A redefinition while fetching may have moved the endpoint to another backend
            await self.persist(key, self._registry.get(key) or definition, record)

        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]

    async def load_record(self, key: str, backend: CacheBackend) -> Optional[CachedRecord]:
        """Read an endpoint's stored record, treating failures as a miss."""
        try:
            return await backend.get(self.storage_key(key))
        except Exception as e:
            self._backend_failed("read", key, e)
            return None

    async def persist(self, key: str, definition: EndpointDefinition, record: CachedRecord) -> None:
        """Write an endpoint's record, logging failures."""
        try:
            await definition.backend.set(self.storage_key(key), record)
        except Exception as e:
            self._backend_failed("write", key, e)

    async def discard(self, key: str, definition: EndpointDefinition) -> None:
        """Remove an endpoint's record, logging failures."""
        try:
            await definition.backend.remove(self.storage_key(key))
        except Exception as e:
            self._backend_failed("remove", key, e)

    async def invalidate(self, key: str) -> None:
        """Drop stored and in-memory data for an endpoint without fetching.

        Args:
            key: Endpoint key
        """
        definition = self._registry.get(key)
        if definition is None:
            logger.warning(f"Cannot invalidate {key!r}: endpoint not defined")
            return

        await self.discard(key, definition)
        self._states.reset(key, is_loading=self.is_in_flight(key))
        logger.info(f"Cache invalidated for {key!r}")

    def _backend_failed(self, operation: str, key: str, error: Exception) -> None:
        self._metrics.record_backend_error()
        logger.error(
            f"Cache backend {operation} failed for {key!r}, continuing without persistence: {error}"
        )

    def __repr__(self) -> str:
        return f"RefetchCoordinator(in_flight={len(self._in_flight)})"


__all__ = ["RefetchCoordinator"]
