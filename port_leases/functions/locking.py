"""
Cross-process exclusive lock over the allocator state directory.

The lock is an flock() on an open handle of a sibling lock file. The kernel
drops it when the handle is closed, including when the holder dies, so a
crashed caller can never leave the state locked.
"""

import fcntl
import logging
from pathlib import Path

from ..constants import LOCK_FILE_NAME
from ..errors import StorageError


class PortLock:
    def __init__(self, state_dir: Path):
        self.path = Path(state_dir) / LOCK_FILE_NAME
        self._handle = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Block until this process holds the lock exclusively."""
        if self._handle is not None:
            raise StorageError(f"Lock {self.path} is already held by this allocator")

        try:
            handle = open(self.path, "a+", encoding="utf-8")  # noqa: SIM115
        except OSError as err:
            raise StorageError(f"Failed to open lock file {self.path}: {err}") from err

        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
        except OSError as err:
            handle.close()
            raise StorageError(f"Failed to lock {self.path}: {err}") from err

        logging.debug(f"Acquired allocator lock {self.path}")
        self._handle = handle

    def release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            # Closing the handle drops the lock even if the unlock call failed
            handle.close()
        logging.debug(f"Released allocator lock {self.path}")

    def __enter__(self) -> "PortLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
