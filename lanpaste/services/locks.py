"""Exclusive repository locks.

Two lock files guard the data directory:
- run/git.lock: held for the whole of every repository mutation
- run/daemon.lock: held for the lifetime of the serving process

Both are advisory OS locks (flock on POSIX) taken without waiting. A lock
held elsewhere is reported as Conflict immediately; callers decide whether
to retry.
"""

from pathlib import Path
from types import TracebackType

from filelock import FileLock, Timeout

from lanpaste.errors import Conflict, Internal
from lanpaste.utils.logging import get_logger

logger = get_logger(__name__)


class RepositoryLock:
    """An acquired exclusive lock on a lock file.

    Instances only exist while the lock is held. Release happens on
    ``release()``, on leaving a ``with`` block, or when the underlying
    FileLock is garbage collected.
    """

    def __init__(self, path: Path, lock: FileLock):
        self.path = path
        self._lock = lock

    @classmethod
    def acquire(cls, path: Path) -> "RepositoryLock":
        """Take the lock without blocking.

        Args:
            path: Lock file path (parent directories are created)

        Returns:
            Held lock handle

        Raises:
            Conflict: If another holder already has the lock
            Internal: If the lock file cannot be created
        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise Internal.io("create lock parent", e) from e

        # A fresh FileLock per acquisition: a shared instance would be
        # re-entrant and let a second caller in.
        lock = FileLock(str(path), timeout=0, thread_local=False)
        try:
            lock.acquire()
        except Timeout as e:
            logger.debug(f"Lock busy: {path}")
            raise Conflict("already running") from e
        except OSError as e:
            raise Internal.io("open lock", e) from e

        return cls(path, lock)

    @property
    def is_held(self) -> bool:
        return self._lock.is_locked

    def release(self) -> None:
        """Release the lock. Safe to call more than once."""
        if self._lock.is_locked:
            self._lock.release(force=True)

    def __enter__(self) -> "RepositoryLock":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
