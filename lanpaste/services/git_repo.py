"""Git adapter for the paste repository.

Runs the git CLI as a subprocess inside the repository working tree with a
fixed author/committer identity. Mutating operations (add, commit, push,
reset) must be called while the caller holds the git lock; this module
never locks on its own.
"""

import asyncio
import os
from pathlib import Path

from lanpaste.config import Settings
from lanpaste.errors import Internal, ServiceUnavailable
from lanpaste.utils.logging import get_logger

logger = get_logger(__name__)

SHORT_COMMIT_LEN = 12

GIT_INSTALL_HINT = (
    "git is required. Install with: Debian/Ubuntu `sudo apt-get install git`, "
    "Fedora `sudo dnf install git`, Arch `sudo pacman -S git`, "
    "macOS `xcode-select --install`"
)

README_TEXT = "# LAN Paste\n\nGit-backed LAN paste store.\n"

GITIGNORE_LINES = [
    "# runtime / scratch",
    "../run/",
    "../tmp/",
    "",
    "# common temp/intermediate",
    "*.tmp",
    "*.swp",
    "*.bak",
    "*.part",
    "*.lock",
    "*.log",
    "",
    "# OS/editor noise",
    ".DS_Store",
    "Thumbs.db",
    ".idea/",
    ".vscode/",
    "",
    "# Python artifacts",
    "__pycache__/",
]


async def check_git_installed() -> None:
    """Verify the git executable is available.

    Raises:
        ServiceUnavailable: If git is missing or broken
    """
    try:
        process = await asyncio.create_subprocess_exec(
            "git", "--version",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, _ = await process.communicate()
    except OSError as e:
        raise ServiceUnavailable(GIT_INSTALL_HINT) from e

    if process.returncode != 0:
        raise ServiceUnavailable("git is required")

    logger.debug(f"Found {stdout.decode().strip()}")


class GitRepository:
    """Git operations on one working tree."""

    def __init__(
        self,
        repo_dir: Path,
        author_name: str,
        author_email: str,
        timeout: float | None = None,
    ):
        """Initialize the adapter.

        Args:
            repo_dir: Working tree root
            author_name: Author and committer name for every commit
            author_email: Author and committer email for every commit
            timeout: Optional limit for a single git invocation (seconds)
        """
        self.repo_dir = repo_dir
        self._author_name = author_name
        self._author_email = author_email
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitRepository":
        return cls(
            settings.paths.repo,
            settings.git_author_name,
            settings.git_author_email,
            timeout=settings.git_timeout,
        )

    async def run(self, *args: str) -> str:
        """Run a git command and return its trimmed stdout.

        Args:
            *args: Arguments after ``git``

        Returns:
            Standard output, stripped

        Raises:
            Internal: If git cannot be spawned, times out or exits non-zero
        """
        try:
            process = await asyncio.create_subprocess_exec(
                "git", *args,
                cwd=str(self.repo_dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._get_git_env(),
            )
        except OSError as e:
            raise Internal(f"git {list(args)} failed: {e}") from e

        try:
            if self._timeout is None:
                stdout, stderr = await process.communicate()
            else:
                stdout, stderr = await asyncio.wait_for(
                    process.communicate(), timeout=self._timeout
                )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise Internal(f"git {list(args)} timed out after {self._timeout}s") from e

        if process.returncode != 0:
            error_msg = stderr.decode(errors="replace").strip()
            raise Internal(f"git {list(args)}: {error_msg}")

        return stdout.decode(errors="replace").strip()

    async def is_repository(self) -> bool:
        """Check whether the working tree is a git repository."""
        if not self.repo_dir.is_dir():
            return False
        try:
            return await self.run("rev-parse", "--is-inside-work-tree") == "true"
        except Internal:
            return False

    async def head(self) -> str | None:
        """Full commit id of HEAD, or None for a repository without commits."""
        try:
            return await self.run("rev-parse", "--verify", "HEAD")
        except Internal:
            return None

    async def commit(self, paths: list[str], subject: str) -> str:
        """Stage exactly the given paths and commit them.

        Args:
            paths: Repository-relative paths to stage
            subject: Commit message

        Returns:
            Short (12 character) commit id of the new HEAD
        """
        await self.run("add", "--", *paths)
        await self.run("commit", "-m", subject)
        return await self.run("rev-parse", f"--short={SHORT_COMMIT_LEN}", "HEAD")

    async def push(self, remote: str) -> None:
        """Push HEAD to a remote.

        Raises:
            Internal: If the push fails
        """
        await self.run("push", remote, "HEAD")

    async def log_commit_for(self, rel_path: str) -> str:
        """Short id of the latest commit touching a path.

        Returns:
            12 character commit id, or an empty string if the path has no
            history yet
        """
        full = await self.run("log", "-n", "1", "--format=%H", "--", rel_path)
        return full[:SHORT_COMMIT_LEN]

    async def reset_soft_head(self) -> None:
        """Move HEAD back one commit, keeping the index and working tree."""
        await self.run("reset", "--soft", "HEAD~1")

    async def reset_index(self) -> None:
        """Unstage everything."""
        await self.run("reset")

    async def bootstrap(self) -> None:
        """Create the repository layout and initial commit if missing.

        Safe to call on an existing repository: only missing pieces are added.
        """
        try:
            self.repo_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise Internal.io("create repo", e) from e

        # A parent work tree would also satisfy is_repository()
        if not (self.repo_dir / ".git").exists() or not await self.is_repository():
            logger.info(f"Initializing git repository at {self.repo_dir}")
            await self.run("init")

        try:
            (self.repo_dir / "pastes").mkdir(exist_ok=True)
            (self.repo_dir / "meta").mkdir(exist_ok=True)

            readme = self.repo_dir / "README.md"
            if not readme.exists():
                readme.write_text(README_TEXT)

            gitignore = self.repo_dir / ".gitignore"
            if not gitignore.exists():
                gitignore.write_text("\n".join(GITIGNORE_LINES) + "\n")
            else:
                content = gitignore.read_text()
                existing = set(content.splitlines())
                missing = [line for line in GITIGNORE_LINES if line and line not in existing]
                if missing:
                    if content and not content.endswith("\n"):
                        content += "\n"
                    gitignore.write_text(content + "\n".join(missing) + "\n")
        except OSError as e:
            raise Internal.io("write repository layout", e) from e

        if await self.head() is None:
            # Empty directories are not tracked, so only the files get committed
            await self.run("add", "README.md", ".gitignore")
            await self.run("commit", "-m", "init lanpaste repository")
            logger.info("Created initial commit")

    def _get_git_env(self) -> dict[str, str]:
        """Get environment variables for git commands.

        Sets a fixed identity and keeps git from prompting.
        """
        env = os.environ.copy()
        env["GIT_AUTHOR_NAME"] = self._author_name
        env["GIT_AUTHOR_EMAIL"] = self._author_email
        env["GIT_COMMITTER_NAME"] = self._author_name
        env["GIT_COMMITTER_EMAIL"] = self._author_email
        # Prevent git from prompting for credentials
        env["GIT_TERMINAL_PROMPT"] = "0"
        # Prevent SSH from prompting
        env["GIT_SSH_COMMAND"] = "ssh -o BatchMode=yes"
        return env
