"""
Configuration constants for the port lease allocator.

These values control the allocatable port window, lease lifetimes, probe
timeouts and the on-disk layout. Every default can be overridden through the
environment variables named below.
"""

# Allocatable window [PORT_RANGE_LOW, PORT_RANGE_HIGH), range end exclusive
PORT_RANGE_LOW = 10000
PORT_RANGE_HIGH = 32000
MAX_TCP_PORT = 65535

# Lease lifetime (in seconds)
LEASE_DURATION_SECONDS = 7200  # 2 hours - matches the CI job timeout

# Bind probe settings
PROBE_HOST = "127.0.0.1"
PROBE_TIMEOUT_SECONDS = 1.0

# On-disk layout inside the state directory
STATE_FILE_NAME = "allocations.json"
LOCK_FILE_NAME = "allocations.lock"
DEFAULT_CACHE_SUBDIR = "port-leases"

# Environment overrides
ENV_STATE_DIR = "PORT_LEASES_STATE_DIR"
ENV_LOW = "PORT_LEASES_LOW"
ENV_HIGH = "PORT_LEASES_HIGH"
ENV_LEASE_SECONDS = "PORT_LEASES_LEASE_SECONDS"
ENV_PROBE_TIMEOUT = "PORT_LEASES_PROBE_TIMEOUT"

# HTTP API / client
API_PREFIX = "/api/v1"
DEFAULT_SERVER_PORT = 8080
CLIENT_TIMEOUT = (3, 20)  # connect, read
