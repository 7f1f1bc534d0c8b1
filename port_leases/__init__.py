import time

from flask import Flask
from flask_restx import Api

from .api import (
    allocation_namespace,
    health_namespace,
    status_namespace,
)
from .api.api import ALLOCATOR_KEY, STARTED_AT_KEY
from .constants import API_PREFIX
from .errors import (
    CorruptStateError,
    ExhaustedError,
    InvalidArgument,
    PortLeaseError,
    StorageError,
    VerificationTimeout,
)
from .functions.allocator import PortAllocator
from .models.models import AllocationRecord, AllocatorConfig

__all__ = [
    "AllocationRecord",
    "AllocatorConfig",
    "CorruptStateError",
    "ExhaustedError",
    "InvalidArgument",
    "PortAllocator",
    "PortLeaseError",
    "StorageError",
    "VerificationTimeout",
    "allocate",
    "create_app",
    "load",
]


def allocate(range_size: int) -> int:
    """Lease range_size ports using the environment configuration, returning the base port."""
    return PortAllocator.from_env().allocate(range_size)


def load(app: Flask, allocator: PortAllocator) -> Api:
    app.config[ALLOCATOR_KEY] = allocator
    app.config.setdefault(STARTED_AT_KEY, time.time())

    api = Api(app, prefix=API_PREFIX, doc=False)
    api.add_namespace(allocation_namespace, "/allocations")
    api.add_namespace(health_namespace, "/health")
    api.add_namespace(status_namespace, "/status")
    return api


def create_app(allocator: PortAllocator | None = None) -> Flask:
    app = Flask(__name__)
    load(app, allocator or PortAllocator.from_env())
    return app
