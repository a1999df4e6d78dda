"""Metadata reader.

Reads the JSON records under meta/ without taking any lock. A record may be
read between being written and being committed; its commit id is then
empty and is filled from git history on every read (nothing is cached or
written back).
"""

from pathlib import Path

from pydantic import ValidationError

from lanpaste.errors import Internal, NotFound
from lanpaste.models import PasteMeta
from lanpaste.services.drafts import META_DIR, meta_rel_path
from lanpaste.services.git_repo import GitRepository
from lanpaste.utils.logging import get_logger
from lanpaste.utils.naming import is_paste_id

logger = get_logger(__name__)


async def hydrate_commit(git: GitRepository, meta: PasteMeta) -> PasteMeta:
    """Fill an empty commit id from the latest commit touching the paste."""
    if meta.commit:
        return meta
    commit = await git.log_commit_for(meta.path)
    return meta.model_copy(update={"commit": commit})


async def read_meta(repo_dir: Path, git: GitRepository, paste_id: str) -> PasteMeta:
    """Read one paste's metadata.

    Args:
        repo_dir: Repository working tree root
        git: Repository adapter used for hydration
        paste_id: Paste identifier

    Returns:
        Hydrated metadata

    Raises:
        NotFound: If no paste has this id
        Internal: If the record cannot be read or parsed
    """
    # Anything that is not a ULID cannot name a record (and never reaches the filesystem)
    if not is_paste_id(paste_id):
        raise NotFound("paste not found")

    path = repo_dir / meta_rel_path(paste_id)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as e:
        raise NotFound("paste not found") from e
    except OSError as e:
        raise Internal.io("read meta", e) from e

    try:
        meta = PasteMeta.model_validate_json(raw)
    except ValidationError as e:
        raise Internal(f"parse meta: {e}") from e

    return await hydrate_commit(git, meta)


async def read_recent(
    repo_dir: Path,
    git: GitRepository,
    limit: int,
    tag: str | None = None,
) -> list[PasteMeta]:
    """List recent pastes, newest first.

    Args:
        repo_dir: Repository working tree root
        git: Repository adapter used for hydration
        limit: Maximum number of records to return
        tag: Only include pastes with exactly this tag

    Returns:
        Hydrated metadata sorted by creation time, descending
    """
    meta_dir = repo_dir / META_DIR
    if not meta_dir.is_dir():
        return []

    metas: list[PasteMeta] = []
    try:
        entries = sorted(meta_dir.glob("*.json"))
    except OSError as e:
        raise Internal.io("read meta dir", e) from e

    for path in entries:
        try:
            meta = PasteMeta.model_validate_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.warning(f"Skipping unreadable metadata record {path.name}: {e}")
            continue

        if tag is not None and meta.tag != tag:
            continue
        metas.append(meta)

    metas.sort(key=lambda m: (m.created_at, m.id), reverse=True)
    return [await hydrate_commit(git, meta) for meta in metas[:limit]]


def read_paste(repo_dir: Path, meta: PasteMeta) -> bytes:
    """Read a paste's raw content.

    Raises:
        NotFound: If the content file is gone
        Internal: If it cannot be read
    """
    try:
        return (repo_dir / meta.path).read_bytes()
    except FileNotFoundError as e:
        raise NotFound("paste content not found") from e
    except OSError as e:
        raise Internal.io("read paste", e) from e
