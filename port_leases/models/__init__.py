from .models import AllocationRecord, AllocatorConfig, RootState

__all__ = [
    "AllocationRecord",
    "AllocatorConfig",
    "RootState",
]
