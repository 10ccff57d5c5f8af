"""Exclusive advisory lock on a playlist repository."""

import fcntl
import logging
import os
import time
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from ..core.errors import RepositoryLocked

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


class RepositoryLock:
    """``flock``-based lock held for the lifetime of one command.

    The lock file itself is left in place; only the kernel lock matters, so a
    crashed process never leaves a stale lock behind.
    """

    def __init__(self, path: Path, timeout: float = 10.0) -> None:
        """Initialize lock.

        Args:
            path: Lock file path
            timeout: Seconds to wait for a competing holder
        """
        self.path = path
        self.timeout = timeout
        self._fd: Optional[int] = None

    @property
    def is_held(self) -> bool:
        """Check whether this object holds the lock."""
        return self._fd is not None

    def acquire(self) -> None:
        """Acquire the lock, waiting up to ``timeout`` seconds.

        Raises:
            RepositoryLocked: If another process still holds it
        """
        if self._fd is not None:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(self.path), os.O_CREAT | os.O_RDWR, 0o644)
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    raise RepositoryLocked(
                        f"Repository is locked by another command: {self.path.parent}"
                    ) from None
                time.sleep(POLL_INTERVAL)

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        logger.debug("Acquired lock %s", self.path)

    def release(self) -> None:
        """Release the lock if held."""
        if self._fd is None:
            return
        fd, self._fd = self._fd, None
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug("Released lock %s", self.path)

    def __enter__(self) -> "RepositoryLock":
        """Acquire on context entry."""
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Release on context exit."""
        self.release()
