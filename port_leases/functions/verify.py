"""
Bind probes confirming that a port is free system-wide.

The state file only knows about leases handed out by this allocator, so each
candidate port is also bound for real, once over TCP and once over UDP, on
the loopback interface. Probe sockets are closed before returning.
"""

import logging
import socket
import time

from ..constants import PROBE_HOST, PROBE_TIMEOUT_SECONDS
from ..errors import VerificationTimeout


def probe_port(port: int, host: str = PROBE_HOST, timeout: float = PROBE_TIMEOUT_SECONDS) -> bool:
    """
    Check whether both a TCP listener and a UDP socket can bind to port.

    Args:
        port: Port number to probe
        host: Address to bind (loopback by default)
        timeout: Upper bound for the probe, in seconds

    Returns:
        True if both binds succeed, False if either fails

    Raises:
        VerificationTimeout: If the probe took longer than timeout
    """
    started = time.monotonic()
    free = True
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as tcp_sock:
            tcp_sock.settimeout(timeout)
            tcp_sock.bind((host, port))
            tcp_sock.listen(1)
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as udp_sock:
                udp_sock.settimeout(timeout)
                udp_sock.bind((host, port))
    except OSError as err:
        logging.debug(f"Port {port} failed bind probe: {err}")
        free = False

    elapsed = time.monotonic() - started
    if elapsed > timeout:
        raise VerificationTimeout(
            f"Bind probe for port {port} took {elapsed:.3f}s (limit {timeout}s)"
        )

    return free


def verify_range(
    base: int,
    size: int,
    host: str = PROBE_HOST,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> int | None:
    """
    Probe the ports [base, base + size) in order.

    Returns:
        Offset of the first port that failed its probe, or None if all are free
    """
    for offset in range(size):
        if not probe_port(base + offset, host=host, timeout=timeout):
            return offset
    return None
