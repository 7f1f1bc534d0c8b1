"""Exceptions raised by the port lease allocator."""


class PortLeaseError(Exception):
    """Base class for every allocator failure."""


class InvalidArgument(PortLeaseError, ValueError):
    """A request size or configuration value is out of range."""


class StorageError(PortLeaseError):
    """The state or lock file could not be read, written or locked."""


class CorruptStateError(StorageError):
    """The state file exists but does not hold a valid allocation state."""


class ExhaustedError(PortLeaseError, RuntimeError):
    """No free, bindable range was found within the bounded search."""


class VerificationTimeout(PortLeaseError):
    """A bind probe took longer than its timeout."""
