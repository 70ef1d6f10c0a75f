"""RoadQuery State Store - Canonical Endpoint State.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Callable, Dict, List, Optional

from roadquery_core.query.state import EMPTY_STATE, EndpointState

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, EndpointState], None]


class EndpointStateStore:
    """Single source of truth for endpoint state.

    Every update replaces the stored EndpointState with a new value and
    fires the change callback exactly once for that update.
    """

    def __init__(self, on_change: Optional[ChangeCallback] = None):
        """Initialize store.

        Args:
            on_change: Called with (key, new_state) after each update
        """
        self._states: Dict[str, EndpointState] = {}
        self._on_change = on_change

    def get(self, key: str) -> EndpointState:
        """Get current state, or the empty default for unknown keys."""
        return self._states.get(key, EMPTY_STATE)

    def set(self, key: str, **changes: Any) -> EndpointState:
        """Apply a partial update and notify.

        Args:
            key: Endpoint key
            **changes: EndpointState fields to replace

        Returns:
            The new state
        """
        state = dataclasses.replace(self.get(key), **changes)
        self._states[key] = state
        if self._on_change is not None:
            self._on_change(key, state)
        return state

    def reset(self, key: str, is_loading: bool = False) -> EndpointState:
        """Return an endpoint to the empty default state.

        Args:
            key: Endpoint key
            is_loading: Keep the loading flag when a fetch is still running

        Returns:
            The new state
        """
        return self.set(
            key,
            data=None,
            is_loading=is_loading,
            is_error=False,
            error=None,
            last_updated=None,
        )

    def keys(self) -> List[str]:
        """Get keys with stored state."""
        return list(self._states.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._states

    def __repr__(self) -> str:
        return f"EndpointStateStore(endpoints={len(self._states)})"


__all__ = ["EndpointStateStore", "ChangeCallback"]
