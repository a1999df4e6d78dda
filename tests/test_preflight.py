"""Tests for startup checks."""

from unittest.mock import AsyncMock, patch

import pytest

from lanpaste.config import Settings
from lanpaste.errors import Conflict, Internal, ServiceUnavailable
from lanpaste.services.git_repo import GitRepository
from lanpaste.services.locks import RepositoryLock
from lanpaste.services.preflight import acquire_daemon_lock, check_ready, run_preflight


class TestRunPreflight:
    """Tests for run_preflight."""

    @pytest.mark.asyncio
    async def test_creates_layout(self, settings: Settings, count_commits):
        """A fresh data directory gets run/, tmp/ and a bootstrapped repo."""
        lock = await run_preflight(settings)
        try:
            paths = settings.paths
            assert paths.run.is_dir()
            assert paths.idempotency.is_dir()
            assert paths.tmp.is_dir()
            assert not (paths.run / ".write_test").exists()
            assert count_commits(paths.repo) == 1
        finally:
            lock.release()

    @pytest.mark.asyncio
    async def test_second_instance_leaves_repo_untouched(self, settings: Settings):
        """Conflict on the daemon lock happens before the repository is bootstrapped."""
        with acquire_daemon_lock(settings.paths):
            with pytest.raises(Conflict):
                await run_preflight(settings)

        assert not settings.paths.repo.exists()

    @pytest.mark.asyncio
    async def test_bootstrap_failure_releases_daemon_lock(self, settings: Settings):
        with patch.object(
            GitRepository,
            "bootstrap",
            new_callable=AsyncMock,
            side_effect=Internal("git init failed"),
        ):
            with pytest.raises(Internal):
                await run_preflight(settings)

        acquire_daemon_lock(settings.paths).release()

    @pytest.mark.asyncio
    async def test_git_missing(self, settings: Settings):
        with patch(
            "lanpaste.services.preflight.check_git_installed",
            new_callable=AsyncMock,
            side_effect=ServiceUnavailable("git is required"),
        ):
            with pytest.raises(ServiceUnavailable):
                await run_preflight(settings)

        assert not settings.paths.repo.exists()


class TestDaemonLock:
    """Tests for the single-instance guard."""

    def test_second_instance_conflicts(self, settings: Settings):
        lock = acquire_daemon_lock(settings.paths)
        try:
            with pytest.raises(Conflict):
                acquire_daemon_lock(settings.paths)
        finally:
            lock.release()

        acquire_daemon_lock(settings.paths).release()


class TestCheckReady:
    """Tests for the readiness probe."""

    @pytest.mark.asyncio
    async def test_ready(self, repo: GitRepository, settings: Settings):
        await check_ready(repo, settings.paths.git_lock)

    @pytest.mark.asyncio
    async def test_missing_repo(self, settings: Settings):
        repo = GitRepository.from_settings(settings)

        with pytest.raises(ServiceUnavailable, match="repo not ready"):
            await check_ready(repo, settings.paths.git_lock)

    @pytest.mark.asyncio
    async def test_git_lock_busy(self, repo: GitRepository, settings: Settings):
        """A held git lock makes the service not ready."""
        with RepositoryLock.acquire(settings.paths.git_lock):
            with pytest.raises(ServiceUnavailable, match="git lock unavailable"):
                await check_ready(repo, settings.paths.git_lock)
