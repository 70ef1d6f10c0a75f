"""RoadQuery Subscriptions - Listener Registration and Delivery.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import copy
import dataclasses
import itertools
import logging
from typing import Callable, Dict, Optional, Set

from roadquery_core.metrics.collector import MetricsCollector
from roadquery_core.query.state import EndpointState

logger = logging.getLogger(__name__)

Listener = Callable[[EndpointState], None]
Unsubscribe = Callable[[], None]


class SubscriptionHub:
    """Manages per-endpoint listeners and the observed set.

    A key is observed while it has at least one listener; dropping the
    last listener removes it from the observed set, so environment
    triggers stop refreshing endpoints nobody is watching.
    """

    def __init__(
        self,
        get_state: Callable[[str], EndpointState],
        on_subscribe: Optional[Callable[[str], None]] = None,
        clone_data: bool = True,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize hub.

        Args:
            get_state: Snapshot source for replay on subscribe
            on_subscribe: Called with the key after each new subscription
            clone_data: Deep-copy data before handing it to listeners
            metrics: Metrics collector
        """
        self._get_state = get_state
        self._on_subscribe = on_subscribe
        self._clone_data = clone_data
        self._metrics = metrics
        self._listeners: Dict[str, Dict[int, Listener]] = {}
        self._tokens = itertools.count(1)

    def subscribe(self, key: str, callback: Listener) -> Unsubscribe:
        """Register a listener.

        The listener is called right away with the current snapshot, then
        on every state change of the endpoint.

        Args:
            key: Endpoint key
            callback: Listener receiving EndpointState snapshots

        Returns:
            Function removing this listener; safe to call more than once
        """
        token = next(self._tokens)
        self._listeners.setdefault(key, {})[token] = callback
        logger.debug(f"Subscribed to {key!r} ({len(self._listeners[key])} listeners)")

        self._deliver(key, callback, self.snapshot(self._get_state(key)))

        if self._on_subscribe is not None:
            self._on_subscribe(key)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners is None or listeners.pop(token, None) is None:
                return
            if not listeners:
                del self._listeners[key]
            logger.debug(
                f"Unsubscribed from {key!r}. Remaining listeners: {len(listeners)}"
            )

        return unsubscribe

    def notify(self, key: str, state: EndpointState) -> None:
        """Deliver a state change to every listener of a key."""
        listeners = self._listeners.get(key)
        if not listeners:
            return

        snapshot = self.snapshot(state)
        for callback in list(listeners.values()):
            self._deliver(key, callback, snapshot)

    def snapshot(self, state: EndpointState) -> EndpointState:
        """Prepare a state for handing out.

        Args:
            state: Stored state

        Returns:
            State whose data is a deep copy when cloning is enabled
        """
        if not self._clone_data or state.data is None:
            return state
        try:
            return dataclasses.replace(state, data=copy.deepcopy(state.data))
        except Exception as e:
            logger.warning(f"Could not copy endpoint data, sharing it instead: {e}")
            return state

    def _deliver(self, key: str, callback: Listener, state: EndpointState) -> None:
        try:
            callback(state)
        except Exception as e:
            logger.error(f"Listener for {key!r} raised: {e}")
        if self._metrics is not None:
            self._metrics.record_notification()

    def observed_keys(self) -> Set[str]:
        """Get keys with at least one listener."""
        return set(self._listeners.keys())

    def is_observed(self, key: str) -> bool:
        return key in self._listeners

    def listener_count(self, key: str) -> int:
        return len(self._listeners.get(key, {}))

    def __repr__(self) -> str:
        return f"SubscriptionHub(observed={len(self._listeners)})"


__all__ = ["SubscriptionHub", "Listener", "Unsubscribe"]
