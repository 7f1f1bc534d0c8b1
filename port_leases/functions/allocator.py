"""
Port range allocation shared between independent processes.

Every operation re-reads the state file under the exclusive PortLock, applies
reclamation, and writes the result back before the lock is released. Nothing
is cached between calls, so threads, subprocesses and unrelated CI jobs can
share one state directory.
"""

import functools
import logging
import time
from collections.abc import Callable

from ..errors import CorruptStateError, ExhaustedError
from ..models.models import AllocationRecord, AllocatorConfig, RootState
from ..validators import validate_lease_seconds, validate_range_size
from .locking import PortLock
from .reclaim import reclaim
from .state import StateStore
from .verify import verify_range

# (base, size) -> offset of the first busy port, or None when all are free
Verifier = Callable[[int, int], int | None]


class PortAllocator:
    """
    Hands out disjoint, time-limited leases on contiguous port ranges.

    Args:
        config: Window bounds, lease duration and state directory
        clock: Returns the current unix time in seconds
        verifier: Bind-probes a candidate range; defaults to verify_range
    """

    def __init__(
        self,
        config: AllocatorConfig,
        clock: Callable[[], float] = time.time,
        verifier: Verifier | None = None,
    ):
        self.config = config
        self.clock = clock
        if verifier is None:
            verifier = functools.partial(
                verify_range, host=config.host, timeout=config.probe_timeout
            )
        self.verifier = verifier
        self.store = StateStore(config.state_dir, config.low)

    @classmethod
    def from_env(cls, environ=None) -> "PortAllocator":
        return cls(AllocatorConfig.from_env(environ))

    @property
    def max_attempts(self) -> int:
        """One full sweep of the window plus the wrap-around step."""
        return (self.config.high - self.config.low) + 2

    def _lock(self) -> PortLock:
        # A fresh handle per call so separate threads exclude each other too
        return PortLock(self.config.state_dir)

    def _load(self) -> RootState:
        return reclaim(self.store.read(), self.clock())

    def allocate(self, range_size: int) -> int:
        """Lease range_size contiguous ports and return the first one."""
        return self.allocate_lease(range_size).base

    def allocate_lease(self, range_size: int) -> AllocationRecord:
        """
        Lease range_size contiguous ports.

        Raises:
            InvalidArgument: range_size is not a positive integer
            StorageError: The lock or state file is unusable
            CorruptStateError: The state file cannot be parsed
            ExhaustedError: No free, bindable range exists in the window
            VerificationTimeout: A bind probe exceeded its timeout
        """
        range_size = validate_range_size(range_size)
        low, high = self.config.low, self.config.high

        with self._lock():
            candidate, state = self._find_range(self._load(), range_size)

            record = AllocationRecord(
                base=candidate,
                size=range_size,
                expires_at=int(self.clock()) + self.config.lease_seconds,
            )
            self.store.write(state.with_allocation(record, next_hint=candidate + range_size))

        logging.info(
            f"Leased ports {record.base}-{record.end - 1} ({range_size}) "
            f"until {record.expires_at} in window {low}-{high}"
        )
        return record

    def _find_range(self, state: RootState, range_size: int) -> tuple[int, RootState]:
        """
        Search for a free range, returning its base and the state it was found
        in (which may have been reclaimed again at wrap-around).

        After wrapping, the scan normally stops at its starting point. If the
        wrap-around reclaim dropped any lease, it continues to the top of the
        window instead, within the same attempt budget.
        """
        low, high = self.config.low, self.config.high

        candidate = state.next_hint if low <= state.next_hint <= high else low
        stop_at = candidate
        wrapped = False

        for _attempt in range(self.max_attempts):
            if wrapped and candidate >= stop_at:
                break

            if candidate + range_size > high:
                if wrapped:
                    break
                reclaimed = reclaim(state, self.clock())
                if len(reclaimed.allocations) < len(state.allocations):
                    # Freed ranges may lie past the starting point
                    stop_at = high
                state = reclaimed
                candidate = low
                wrapped = True
                logging.debug(f"Reached end of window at {high}, wrapping to {low}")
                continue

            stop = candidate + range_size
            conflict = state.first_overlap(candidate, stop)
            if conflict is not None:
                logging.debug(
                    f"Range {candidate}-{stop - 1} overlaps lease at {conflict.base}, "
                    f"skipping to {conflict.end}"
                )
                candidate = conflict.end
                continue

            busy_offset = self.verifier(candidate, range_size)
            if busy_offset is not None:
                logging.debug(f"Port {candidate + busy_offset} is in use, skipping past it")
                candidate = candidate + busy_offset + 1
                continue

            return candidate, state

        raise ExhaustedError(
            f"No free range of {range_size} port(s) found in window {low}-{high}. "
            "Port range may be exhausted."
        )

    def release(self, base: int) -> bool:
        """Drop the lease starting at base. Returns False if there was none."""
        with self._lock():
            state = self._load()
            if base not in state.allocations:
                return False
            self.store.write(state.without_allocation(base))

        logging.info(f"Released lease at port {base}")
        return True

    def renew(self, base: int, lease_seconds: int | None = None) -> AllocationRecord | None:
        """
        Replace the live lease at base with one expiring lease_seconds from now.

        Returns:
            The new record, or None if no live lease starts at base
        """
        seconds = self.config.lease_seconds if lease_seconds is None else lease_seconds
        validate_lease_seconds(seconds)

        with self._lock():
            state = self._load()
            current = state.allocations.get(base)
            if current is None:
                return None

            record = AllocationRecord(
                base=current.base,
                size=current.size,
                expires_at=int(self.clock()) + seconds,
            )
            self.store.write(state.with_allocation(record))

        logging.info(f"Renewed lease at port {base} until {record.expires_at}")
        return record

    def leases(self) -> list[AllocationRecord]:
        """Live leases in base port order. Does not modify the state file."""
        with self._lock():
            return self._load().records()

    def clear(self) -> int:
        """
        Remove every lease and reset the scan hint. Returns the number removed.

        A corrupt state file is replaced as well and counts as zero leases.
        """
        with self._lock():
            try:
                removed = len(self.store.read().allocations)
            except CorruptStateError:
                logging.warning(f"Discarding corrupt state file {self.store.path}")
                removed = 0
            self.store.write(RootState(next_hint=self.config.low))

        logging.info(f"Cleared {removed} lease(s) from {self.store.path}")
        return removed
