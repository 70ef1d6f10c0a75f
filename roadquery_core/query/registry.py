"""RoadQuery Registry - Endpoint Definitions.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from roadquery_core.query.staleness import validate_window

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class EndpointOptions:
    """Per-endpoint options.

    Attributes:
        freshness_window: Seconds data stays fresh; None uses the engine default
        backend: Backend name or CacheBackend instance; None uses the engine default
    """

    freshness_window: Optional[float] = None
    backend: Optional[Any] = None

    def __post_init__(self):
        validate_window(self.freshness_window)


@dataclass(frozen=True)
class EndpointDefinition:
    """A registered endpoint.

    Attributes:
        key: Endpoint key
        fetcher: Zero-argument callable producing the data
        freshness_window: Effective freshness window in seconds
        backend: Resolved CacheBackend for this endpoint
        version: Bumped on every redefinition
    """

    key: str
    fetcher: Fetcher
    freshness_window: float
    backend: Any
    version: int = 1


class EndpointRegistry:
    """Holds the fetcher and configuration of every defined endpoint.

    Redefining a key replaces its definition; nothing else about the
    endpoint (state, listeners, in-flight fetch) is touched here.
    """

    def __init__(self):
        self._definitions: Dict[str, EndpointDefinition] = {}

    def define(
        self,
        key: str,
        fetcher: Fetcher,
        freshness_window: float,
        backend: Any,
    ) -> EndpointDefinition:
        """Register or replace an endpoint.

        Args:
            key: Endpoint key
            fetcher: Data fetcher
            freshness_window: Effective freshness window in seconds
            backend: Resolved CacheBackend

        Returns:
            The stored definition
        """
        if not callable(fetcher):
            raise TypeError(f"Fetcher for {key!r} must be callable")

        previous = self._definitions.get(key)
        if previous is not None:
            logger.warning(
                f"Endpoint {key!r} is already defined. Overwriting existing definition."
            )

        definition = EndpointDefinition(
            key=key,
            fetcher=fetcher,
            freshness_window=freshness_window,
            backend=backend,
            version=previous.version + 1 if previous else 1,
        )
        self._definitions[key] = definition
        return definition

    def get(self, key: str) -> Optional[EndpointDefinition]:
        """Get definition by key."""
        return self._definitions.get(key)

    def keys(self) -> List[str]:
        """Get all defined keys."""
        return list(self._definitions.keys())

    def __contains__(self, key: str) -> bool:
        return key in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __repr__(self) -> str:
        return f"EndpointRegistry(endpoints={len(self._definitions)})"


__all__ = ["EndpointRegistry", "EndpointDefinition", "EndpointOptions", "Fetcher"]
