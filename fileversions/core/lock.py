"""Advisory repository lock.

Serializes mutating operations across processes with fcntl.flock on a
single lock file inside the repository.
"""

from __future__ import annotations

import fcntl
import time
from pathlib import Path
from typing import IO

from ..utils.env import log_debug


class LockTimeoutError(Exception):
    """Raised when the repository lock cannot be acquired in time."""


class RepositoryLock:
    """Scoped exclusive lock, released on every exit path."""

    POLL_INTERVAL = 0.05

    def __init__(self, lock_path: Path | str, timeout: float | None = None):
        """Initialize lock.

        Args:
            lock_path: Lock file to flock (created if missing)
            timeout: Seconds to wait; None blocks until acquired
        """
        self.lock_path = Path(lock_path)
        self.timeout = timeout
        self._fd: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        if self._fd is not None:
            raise RuntimeError(f"Lock already held: {self.lock_path}")

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        fd = open(self.lock_path, "a")
        try:
            if self.timeout is None:
                fcntl.flock(fd.fileno(), fcntl.LOCK_EX)
            else:
                self._acquire_with_timeout(fd)
        except BaseException:
            fd.close()
            raise

        self._fd = fd
        log_debug(f"Acquired lock {self.lock_path}")

    def release(self) -> None:
        fd = self._fd
        if fd is None:
            return
        self._fd = None
        try:
            fcntl.flock(fd.fileno(), fcntl.LOCK_UN)
        finally:
            fd.close()
        log_debug(f"Released lock {self.lock_path}")

    def _acquire_with_timeout(self, fd: IO[str]) -> None:
        deadline = time.monotonic() + (self.timeout or 0.0)
        while True:
            try:
                fcntl.flock(fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    raise LockTimeoutError(
                        f"Another operation holds {self.lock_path}. "
                        "Wait for it to finish and retry."
                    )
                time.sleep(self.POLL_INTERVAL)

    def __enter__(self) -> RepositoryLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
