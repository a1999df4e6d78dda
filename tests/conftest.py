"""Pytest configuration and fixtures."""

import os
import subprocess
from pathlib import Path

import pytest
import pytest_asyncio

# Set test environment variables before importing app modules
os.environ["LANPASTE_ENVIRONMENT"] = "development"

from lanpaste.config import Settings
from lanpaste.models import CreatePasteInput
from lanpaste.services.git_repo import GitRepository


def git(repo_dir: Path, *args: str) -> str:
    """Run git synchronously in a repository and return its trimmed stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=repo_dir,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def commit_count(repo_dir: Path) -> int:
    return int(git(repo_dir, "rev-list", "--count", "HEAD"))


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Empty data directory for one test."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    """Settings pointing at the temp data directory, push disabled."""
    return Settings(
        data_dir=data_dir,
        environment="development",
        remote="no-such-remote",
    )


@pytest_asyncio.fixture
async def repo(settings: Settings) -> GitRepository:
    """Bootstrapped repository in the temp data directory."""
    git_repo = GitRepository.from_settings(settings)
    await git_repo.bootstrap()
    return git_repo


@pytest.fixture
def paste_input() -> CreatePasteInput:
    """A small plain-text create request."""
    return CreatePasteInput(
        content=b"hello world\n",
        name="notes",
        tag="demo",
        client_ip="10.0.0.5",
        user_agent="pytest",
    )


@pytest.fixture
def run_git():
    """Callable running git in a repository: ``run_git(repo_dir, *args)``."""
    return git


@pytest.fixture
def count_commits():
    """Callable returning the number of commits reachable from HEAD."""
    return commit_count
