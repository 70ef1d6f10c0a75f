"""RoadQuery Signals - Host Environment Triggers.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)

SignalHandler = Callable[[], None]


class EnvironmentSignal(Enum):
    """Host events that may warrant a background refresh."""

    VISIBILITY_REGAINED = "visibility_regained"
    CONNECTIVITY_REGAINED = "connectivity_regained"


class EnvironmentSignals:
    """Registry of handlers for host environment events.

    The host (an application shell, a network monitor, a test) calls
    ``emit`` when the application becomes visible again or when the
    network comes back. Registering the same handler twice is a no-op,
    so engines restarted repeatedly never stack duplicate handlers.

    Example:
        signals = EnvironmentSignals()
        engine = QueryEngine(signals=signals)
        engine.start()
        signals.emit(EnvironmentSignal.CONNECTIVITY_REGAINED)
    """

    def __init__(self):
        self._handlers: Dict[EnvironmentSignal, List[SignalHandler]] = {
            signal: [] for signal in EnvironmentSignal
        }

    def add_listener(self, signal: EnvironmentSignal, handler: SignalHandler) -> bool:
        """Register a handler.

        Args:
            signal: Event to listen for
            handler: Zero-argument callable

        Returns:
            True if added, False if already registered
        """
        handlers = self._handlers[signal]
        if handler in handlers:
            return False
        handlers.append(handler)
        return True

    def remove_listener(self, signal: EnvironmentSignal, handler: SignalHandler) -> bool:
        """Unregister a handler.

        Args:
            signal: Event the handler listens for
            handler: Previously registered handler

        Returns:
            True if removed
        """
        handlers = self._handlers[signal]
        if handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def emit(self, signal: EnvironmentSignal) -> int:
        """Invoke every handler of a signal.

        Args:
            signal: Event that occurred

        Returns:
            Number of handlers invoked
        """
        handlers = list(self._handlers[signal])
        logger.debug(f"Signal {signal.value} -> {len(handlers)} handlers")
        for handler in handlers:
            try:
                handler()
            except Exception as e:
                logger.error(f"Handler for {signal.value} raised: {e}")
        return len(handlers)

    def listener_count(self, signal: EnvironmentSignal) -> int:
        return len(self._handlers[signal])


__all__ = ["EnvironmentSignal", "EnvironmentSignals", "SignalHandler"]
