import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from ..constants import (
    DEFAULT_CACHE_SUBDIR,
    ENV_HIGH,
    ENV_LEASE_SECONDS,
    ENV_LOW,
    ENV_PROBE_TIMEOUT,
    ENV_STATE_DIR,
    LEASE_DURATION_SECONDS,
    PORT_RANGE_HIGH,
    PORT_RANGE_LOW,
    PROBE_HOST,
    PROBE_TIMEOUT_SECONDS,
)
from ..errors import StorageError
from ..validators import (
    parse_int_setting,
    parse_positive_float_setting,
    validate_lease_seconds,
    validate_port_window,
)


@dataclass(frozen=True)
class AllocationRecord:
    """
    A lease on the contiguous ports [base, base + size).
    """

    base: int
    size: int
    expires_at: int

    @property
    def end(self) -> int:
        return self.base + self.size

    def overlaps(self, start: int, stop: int) -> bool:
        """True if this lease intersects [start, stop)."""
        return self.base < stop and start < self.end

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def to_dict(self) -> dict[str, int]:
        return {"base": self.base, "size": self.size, "expires_at": self.expires_at}


@dataclass(frozen=True)
class RootState:
    """
    Allocation bookkeeping shared by every process through the state file.
    """

    next_hint: int
    allocations: dict[int, AllocationRecord] = field(default_factory=dict)

    def records(self) -> list[AllocationRecord]:
        """Leases ordered by base port."""
        return [self.allocations[base] for base in sorted(self.allocations)]

    def first_overlap(self, start: int, stop: int) -> AllocationRecord | None:
        for record in self.records():
            if record.overlaps(start, stop):
                return record
        return None

    def with_allocation(self, record: AllocationRecord, next_hint: int | None = None) -> "RootState":
        allocations = dict(self.allocations)
        allocations[record.base] = record
        hint = self.next_hint if next_hint is None else next_hint
        return replace(self, next_hint=hint, allocations=allocations)

    def without_allocation(self, base: int) -> "RootState":
        allocations = {k: v for k, v in self.allocations.items() if k != base}
        return replace(self, allocations=allocations)


def _default_state_dir(env) -> Path:
    cache_home = env.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache_home) / DEFAULT_CACHE_SUBDIR


@dataclass(frozen=True)
class AllocatorConfig:
    """
    Allocator settings. Use from_env() to honour the PORT_LEASES_* variables.
    """

    state_dir: Path
    low: int = PORT_RANGE_LOW
    high: int = PORT_RANGE_HIGH
    lease_seconds: int = LEASE_DURATION_SECONDS
    probe_timeout: float = PROBE_TIMEOUT_SECONDS
    host: str = PROBE_HOST

    def __post_init__(self):
        validate_port_window(self.low, self.high)
        validate_lease_seconds(self.lease_seconds)

    @classmethod
    def from_env(cls, environ=None) -> "AllocatorConfig":
        """
        Build a config from environment variables.

        The default per-user cache directory is created on demand. A directory
        named explicitly through PORT_LEASES_STATE_DIR must already exist.
        """
        env = os.environ if environ is None else environ

        state_dir = env.get(ENV_STATE_DIR)
        if state_dir:
            path = Path(state_dir).expanduser()
        else:
            path = _default_state_dir(env)
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as err:
                raise StorageError(f"Failed to create state directory {path}: {err}") from err

        kwargs = {"state_dir": path}
        if ENV_LOW in env:
            kwargs["low"] = parse_int_setting(ENV_LOW, env[ENV_LOW])
        if ENV_HIGH in env:
            kwargs["high"] = parse_int_setting(ENV_HIGH, env[ENV_HIGH])
        if ENV_LEASE_SECONDS in env:
            kwargs["lease_seconds"] = parse_int_setting(ENV_LEASE_SECONDS, env[ENV_LEASE_SECONDS])
        if ENV_PROBE_TIMEOUT in env:
            kwargs["probe_timeout"] = parse_positive_float_setting(
                ENV_PROBE_TIMEOUT, env[ENV_PROBE_TIMEOUT]
            )

        return cls(**kwargs)
