"""PID lock file — keep a single edge-cd agent running per node."""

from __future__ import annotations

import os
from pathlib import Path

ACQUIRE_ATTEMPTS = 3


class LockHeldError(RuntimeError):
    """Another live edge-cd process holds the lock."""


def pid_alive(pid: int) -> bool:
    """True if a process with ``pid`` exists."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # exists, owned by someone else
    return True


class ProcessLock:
    """A lock file holding the PID of the process that owns it.

    A lock left behind by a process that is no longer running is taken over.

    Use as a context manager::

        with ProcessLock(path):
            run_agent()
    """

    def __init__(self, path: str | Path, pid: int | None = None):
        self.path = Path(path)
        self.pid = pid if pid is not None else os.getpid()

    def __enter__(self) -> "ProcessLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()

    def holder(self) -> int | None:
        """Return the PID recorded in the lock file, if any."""
        try:
            return int(self.path.read_text().strip())
        except (OSError, ValueError):
            return None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            LockHeldError: If a different, running process holds it.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(ACQUIRE_ATTEMPTS):
            if self._create():
                return
            holder = self.holder()
            if holder == self.pid:
                return
            if holder is not None and pid_alive(holder):
                raise LockHeldError(
                    f"Cannot take lock at {self.path}: edge-cd process {holder} is already running"
                )
            self._remove_stale(holder)

        raise LockHeldError(f"Cannot take lock at {self.path}: it keeps changing hands")

    def release(self) -> None:
        """Remove the lock file if this process owns it."""
        if self.holder() == self.pid:
            self.path.unlink(missing_ok=True)

    def _create(self) -> bool:
        """Create the lock file holding our PID. Returns False if it already exists."""
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w") as f:
            f.write(str(self.pid))
        return True

    def _remove_stale(self, holder: int | None) -> None:
        # Only remove the file if nobody replaced it since it was read.
        if self.holder() == holder:
            self.path.unlink(missing_ok=True)
