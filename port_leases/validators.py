"""
Validation utilities for allocation requests and allocator configuration.

This module provides the shared checks used by the library entry point, the
HTTP API and the command line before any lock is taken.
"""

from .constants import MAX_TCP_PORT
from .errors import InvalidArgument


def validate_range_size(range_size) -> int:
    """
    Validate the number of ports requested in a single allocation.

    Args:
        range_size: Requested number of contiguous ports

    Returns:
        The size as an int

    Raises:
        InvalidArgument: If the size is not a positive integer or exceeds the
            number of TCP ports

    Examples:
        >>> validate_range_size(3)
        3
        >>> validate_range_size(0)  # Raises InvalidArgument
    """
    # bool is an int subclass, True would silently mean 1
    if isinstance(range_size, bool) or not isinstance(range_size, int):
        raise InvalidArgument(
            f"Range size must be an integer, got {type(range_size).__name__}: {range_size!r}"
        )

    if range_size <= 0:
        raise InvalidArgument(f"Range size must be positive, got {range_size}")

    if range_size > MAX_TCP_PORT:
        raise InvalidArgument(
            f"Range size {range_size} exceeds the number of TCP ports ({MAX_TCP_PORT})"
        )

    return range_size


def validate_port_window(low: int, high: int) -> None:
    """
    Validate the allocatable window [low, high).

    Raises:
        InvalidArgument: If the bounds are not 1 <= low < high <= 65536
    """
    if low < 1 or low > MAX_TCP_PORT:
        raise InvalidArgument(f"Low bound {low} is out of valid range (1-{MAX_TCP_PORT})")

    # high is exclusive, so 65536 still only hands out real ports
    if high > MAX_TCP_PORT + 1:
        raise InvalidArgument(f"High bound {high} exceeds {MAX_TCP_PORT + 1}")

    if high <= low:
        raise InvalidArgument(f"High bound {high} must be greater than low bound {low}")


def validate_lease_seconds(seconds) -> None:
    if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
        raise InvalidArgument(f"Lease duration must be a positive integer, got {seconds!r}")


def parse_int_setting(name: str, raw: str) -> int:
    """Parse an integer environment setting, naming the variable on failure."""
    try:
        return int(raw.strip())
    except ValueError as err:
        raise InvalidArgument(f"{name} must be a valid integer, got {raw!r}") from err


def parse_positive_float_setting(name: str, raw: str) -> float:
    try:
        value = float(raw.strip())
    except ValueError as err:
        raise InvalidArgument(f"{name} must be a valid number, got {raw!r}") from err

    if value <= 0:
        raise InvalidArgument(f"{name} must be positive, got {value}")
    return value
