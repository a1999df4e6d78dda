"""Startup checks and data directory bootstrap."""

from pathlib import Path

from lanpaste.config import AppPaths, Settings
from lanpaste.errors import Internal, LanPasteError, ServiceUnavailable
from lanpaste.services.git_repo import GitRepository, check_git_installed
from lanpaste.services.locks import RepositoryLock
from lanpaste.utils.logging import get_logger

logger = get_logger(__name__)


async def run_preflight(settings: Settings) -> RepositoryLock:
    """Prepare the data directory for serving.

    Checks git, creates run/, run/idempotency/ and tmp/, verifies the run
    directory is writable, claims the daemon lock and only then bootstraps
    the repository, so a second instance never touches repo/.

    Returns:
        The held daemon lock; the caller releases it on shutdown

    Raises:
        ServiceUnavailable: If git is missing
        Conflict: If another instance is serving this data directory
        Internal: If directories or the repository cannot be created
    """
    await check_git_installed()

    paths = settings.paths
    try:
        for directory in (paths.run, paths.idempotency, paths.tmp):
            directory.mkdir(parents=True, exist_ok=True)

        write_test = paths.run / ".write_test"
        write_test.write_bytes(b"ok")
        write_test.unlink()
    except OSError as e:
        raise Internal.io("prepare data directory", e) from e

    daemon_lock = acquire_daemon_lock(paths)
    try:
        await GitRepository.from_settings(settings).bootstrap()
    except BaseException:
        daemon_lock.release()
        raise

    logger.info(f"Preflight complete for {paths.base}")
    return daemon_lock


def acquire_daemon_lock(paths: AppPaths) -> RepositoryLock:
    """Claim the data directory for this process.

    Raises:
        Conflict: If another instance is already serving this directory
    """
    lock = RepositoryLock.acquire(paths.daemon_lock)
    logger.info(f"Acquired daemon lock {paths.daemon_lock}")
    return lock


async def check_ready(git: GitRepository, git_lock_path: Path) -> None:
    """Readiness probe: the repository exists and is not wedged.

    Raises:
        ServiceUnavailable: If the repo is missing or the git lock is busy
    """
    if not await git.is_repository():
        raise ServiceUnavailable("repo not ready")

    try:
        with RepositoryLock.acquire(git_lock_path):
            pass
    except LanPasteError as e:
        raise ServiceUnavailable(f"git lock unavailable: {e.message}") from e
