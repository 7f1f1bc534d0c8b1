"""Test configuration and shared fixtures."""

import pytest

from port_leases.functions.allocator import PortAllocator
from port_leases.models.models import AllocatorConfig

T0 = 1_700_000_000


class FakeClock:
    """Settable replacement for time.time()."""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def all_free(base: int, size: int):
    """Verifier stub reporting every port as bindable."""
    return None


# ---------------------------------------------------------------------------
# Shared Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def state_dir(tmp_path):
    """Empty directory holding the state and lock files."""
    path = tmp_path / "state"
    path.mkdir()
    return path


@pytest.fixture
def small_config(state_dir):
    """Ten-port window [10000, 10010) with a 120 second lease."""
    return AllocatorConfig(state_dir=state_dir, low=10000, high=10010, lease_seconds=120)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def allocator(small_config, clock):
    """Allocator over the small window with a fake clock and no socket probing."""
    return PortAllocator(small_config, clock=clock, verifier=all_free)


@pytest.fixture
def make_allocator(state_dir, clock):
    """Factory for allocators sharing state_dir with custom bounds or verifier."""

    def _make(low=10000, high=10010, lease_seconds=120, verifier=all_free, **kwargs):
        config = AllocatorConfig(
            state_dir=state_dir, low=low, high=high, lease_seconds=lease_seconds, **kwargs
        )
        return PortAllocator(config, clock=clock, verifier=verifier)

    return _make
