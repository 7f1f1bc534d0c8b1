"""Tests for reclaim(), the pure expiry filter."""

import pytest

from port_leases.functions.reclaim import reclaim
from port_leases.models.models import AllocationRecord, RootState

T0 = 1_700_000_000


def _state():
    return RootState(
        next_hint=10006,
        allocations={
            10000: AllocationRecord(10000, 3, T0 + 120),
            10003: AllocationRecord(10003, 3, T0 + 600),
        },
    )


class TestReclaim:
    @pytest.mark.pure
    def test_keeps_live_leases(self):
        assert reclaim(_state(), T0) == _state()

    @pytest.mark.pure
    def test_drops_expired_lease(self):
        """At T0+121 the lease expiring at T0+120 is gone."""
        result = reclaim(_state(), T0 + 121)
        assert list(result.allocations) == [10003]

    @pytest.mark.pure
    def test_expiry_boundary_is_inclusive(self):
        result = reclaim(_state(), T0 + 120)
        assert 10000 not in result.allocations

    @pytest.mark.pure
    def test_drops_everything_when_all_expired(self):
        result = reclaim(_state(), T0 + 10_000)
        assert result.allocations == {}

    @pytest.mark.pure
    def test_preserves_next_hint_and_input(self):
        state = _state()
        result = reclaim(state, T0 + 10_000)

        assert result.next_hint == 10006
        assert len(state.allocations) == 2
