"""Tests for the staleness policy and state values.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import pytest

from roadquery_core.query.staleness import NEVER_STALE, is_stale, validate_window
from roadquery_core.query.state import CachedRecord, EndpointState, EndpointStatus


class TestIsStale:
    """Tests for is_stale."""

    def test_never_fetched_is_stale(self):
        """Missing last_updated is always stale."""
        assert is_stale(None, 60, now=1000)
        assert is_stale(None, NEVER_STALE, now=1000)

    def test_within_window_is_fresh(self):
        """Data younger than the window is fresh."""
        assert not is_stale(10_000, 5, now=14_000)

    def test_boundary_is_fresh(self):
        """Exactly the window age is still fresh."""
        assert not is_stale(10_000, 5, now=15_000)
        assert is_stale(10_000, 5, now=15_001)

    def test_never_stale_window(self):
        """NEVER_STALE ignores age once fetched."""
        assert not is_stale(0, NEVER_STALE, now=10**15)

    def test_zero_window(self):
        """A zero window makes any elapsed time stale."""
        assert not is_stale(1000, 0, now=1000)
        assert is_stale(1000, 0, now=1001)

    def test_validate_window(self):
        """Negative windows are rejected."""
        assert validate_window(None) is None
        assert validate_window(NEVER_STALE) == NEVER_STALE
        with pytest.raises(ValueError):
            validate_window(-1)
        with pytest.raises(ValueError):
            validate_window(float("nan"))


class TestEndpointState:
    """Tests for EndpointState and CachedRecord."""

    def test_default_state(self):
        """Default state is empty and uninitialized."""
        state = EndpointState()
        assert state.data is None
        assert not state.is_loading
        assert not state.is_error
        assert state.error is None
        assert state.last_updated is None
        assert state.status is EndpointStatus.UNINITIALIZED

    def test_error_requires_value(self):
        """is_error without an error is rejected."""
        with pytest.raises(ValueError):
            EndpointState(is_error=True)

    def test_status(self):
        """Status follows the flags."""
        assert EndpointState(is_loading=True).status is EndpointStatus.LOADING
        assert EndpointState(is_error=True, error=RuntimeError("x")).status is EndpointStatus.ERRORED
        assert EndpointState(data=[1], last_updated=5).status is EndpointStatus.IDLE

    def test_to_record(self):
        """Only fetched states become records."""
        assert EndpointState().to_record() is None
        assert EndpointState(data=[1], last_updated=5).to_record() == CachedRecord([1], 5)

    def test_record_layout(self):
        """Records use the persisted field names."""
        record = CachedRecord(data={"a": 1}, last_updated=42)
        assert record.to_dict() == {"data": {"a": 1}, "lastUpdated": 42}
        assert CachedRecord.from_dict({"data": {"a": 1}, "lastUpdated": 42}) == record

    def test_record_rejects_malformed(self):
        """Malformed payloads raise ValueError."""
        with pytest.raises(ValueError):
            CachedRecord.from_dict({"lastUpdated": 1})
        with pytest.raises(ValueError):
            CachedRecord.from_dict({"data": 1, "lastUpdated": "yesterday"})
        with pytest.raises(ValueError):
            CachedRecord.from_dict([1, 2])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
