"""RoadQuery Staleness - Freshness Window Policy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import math
from typing import Optional

# Freshness window that never expires; unfetched endpoints are still stale.
NEVER_STALE = math.inf


def is_stale(
    last_updated: Optional[int],
    freshness_window: float,
    now: int,
) -> bool:
    """Decide whether cached data is due for a refetch.

    Args:
        last_updated: Last successful fetch, epoch milliseconds, or None
        freshness_window: Seconds the data stays fresh, or NEVER_STALE
        now: Current time, epoch milliseconds

    Returns:
        True if the endpoint should be fetched
    """
    if last_updated is None:
        return True
    if freshness_window == NEVER_STALE:
        return False
    return now - last_updated > freshness_window * 1000


def validate_window(freshness_window: Optional[float]) -> Optional[float]:
    """Check a configured freshness window.

    Args:
        freshness_window: Seconds, NEVER_STALE, or None

    Returns:
        The window unchanged

    Raises:
        ValueError: If the window is negative or NaN
    """
    if freshness_window is None:
        return None
    if math.isnan(freshness_window) or freshness_window < 0:
        raise ValueError(f"freshness_window must be >= 0, got {freshness_window!r}")
    return freshness_window


__all__ = ["NEVER_STALE", "is_stale", "validate_window"]
