"""RoadQuery State - Endpoint State and Cached Record Values.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Mapping, Optional


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class EndpointStatus(Enum):
    """Endpoint lifecycle positions."""

    UNINITIALIZED = auto()  # Never fetched, nothing hydrated
    IDLE = auto()           # Holding data (or empty) with nothing running
    LOADING = auto()        # A fetch is in flight
    ERRORED = auto()        # Last fetch failed


@dataclass(frozen=True)
class CachedRecord:
    """Persisted form of a successful fetch.

    Attributes:
        data: Fetched payload
        last_updated: Fetch completion time in epoch milliseconds
    """

    data: Any
    last_updated: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted layout.

        Returns:
            Dictionary with ``data`` and ``lastUpdated``
        """
        return {"data": self.data, "lastUpdated": self.last_updated}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CachedRecord":
        """Create from the persisted layout.

        Args:
            payload: Dictionary with ``data`` and ``lastUpdated``

        Returns:
            CachedRecord instance

        Raises:
            ValueError: If the payload is not a valid record
        """
        if not isinstance(payload, Mapping) or "data" not in payload:
            raise ValueError("Cached record is missing 'data'")

        last_updated = payload.get("lastUpdated")
        if isinstance(last_updated, bool) or not isinstance(last_updated, (int, float)):
            raise ValueError(f"Invalid lastUpdated: {last_updated!r}")

        return cls(data=payload["data"], last_updated=int(last_updated))


@dataclass(frozen=True)
class EndpointState:
    """Reactive state of one endpoint.

    Instances are immutable; every change produces a new value.

    Attributes:
        data: Last successfully fetched (or hydrated) payload
        is_loading: A fetch is in flight
        is_error: The last fetch failed
        error: Exception raised by the last failed fetch
        last_updated: Time of the last successful fetch, epoch milliseconds
    """

    data: Any = None
    is_loading: bool = False
    is_error: bool = False
    error: Optional[BaseException] = None
    last_updated: Optional[int] = None

    def __post_init__(self):
        if self.is_error and self.error is None:
            raise ValueError("EndpointState with is_error=True requires an error")

    @property
    def status(self) -> EndpointStatus:
        """Position in the endpoint state machine."""
        if self.is_loading:
            return EndpointStatus.LOADING
        if self.is_error:
            return EndpointStatus.ERRORED
        if self.last_updated is None and self.data is None:
            return EndpointStatus.UNINITIALIZED
        return EndpointStatus.IDLE

    @property
    def has_data(self) -> bool:
        """Whether a payload is available."""
        return self.last_updated is not None

    def to_record(self) -> Optional[CachedRecord]:
        """Get the persistable part of the state.

        Returns:
            CachedRecord or None if never fetched
        """
        if self.last_updated is None:
            return None
        return CachedRecord(data=self.data, last_updated=self.last_updated)


EMPTY_STATE = EndpointState()


__all__ = [
    "CachedRecord",
    "EndpointState",
    "EndpointStatus",
    "EMPTY_STATE",
    "now_millis",
]
