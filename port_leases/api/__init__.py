from .api import (
    allocation_namespace,
    health_namespace,
    status_namespace,
)

__all__ = [
    "allocation_namespace",
    "health_namespace",
    "status_namespace",
]
