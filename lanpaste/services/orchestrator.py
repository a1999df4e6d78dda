"""Commit orchestration for paste drafts.

Commits a draft and applies the configured push policy:
- off: commit only
- best_effort: push, but a failed push only gets recorded in the result
- strict: push, and on failure undo the commit and remove the draft files

Strict-mode compensation is opportunistic. Each undo step is attempted even
if an earlier one failed, and the push failure is what gets raised.
"""

from lanpaste.config import PushMode
from lanpaste.errors import Internal
from lanpaste.models import CommitResult, PasteDraft
from lanpaste.services.git_repo import GitRepository
from lanpaste.utils.logging import get_logger


async def commit_paste(
    git: GitRepository,
    draft: PasteDraft,
    push_mode: PushMode,
    remote: str,
) -> CommitResult:
    """Commit a draft and apply the push policy.

    The caller must hold the git lock for the whole call.

    Args:
        git: Repository adapter
        draft: Files written by build_draft
        push_mode: Push policy
        remote: Remote name to push to

    Returns:
        CommitResult with the short commit id and push outcome

    Raises:
        Internal: If staging/committing fails, or a strict push fails
    """
    log = get_logger(__name__, paste_id=draft.id)

    commit = await git.commit([draft.rel_path, draft.meta_rel_path], draft.subject)
    log.info(f"Committed {draft.rel_path} as {commit}")

    if push_mode == PushMode.OFF:
        return CommitResult(commit=commit, pushed=False)

    try:
        await git.push(remote)
    except Internal as e:
        if push_mode == PushMode.BEST_EFFORT:
            return CommitResult(commit=commit, pushed=False, push_error=e.message)

        log.error(f"Strict push to {remote} failed, rolling back {commit}")
        await _rollback(git, draft)
        raise Internal(f"push failed in strict mode: {e.message}") from e

    log.info(f"Pushed {commit} to {remote}")
    return CommitResult(commit=commit, pushed=True)


async def _rollback(git: GitRepository, draft: PasteDraft) -> None:
    """Undo a committed draft as far as possible."""
    log = get_logger(__name__, paste_id=draft.id)

    try:
        await git.reset_soft_head()
    except Internal as e:
        log.warning(f"Rollback: reset --soft failed: {e.message}")

    for path in (draft.abs_path, draft.meta_path):
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            log.warning(f"Rollback: could not remove {path}: {e}")

    try:
        await git.reset_index()
    except Internal as e:
        log.warning(f"Rollback: reset failed: {e.message}")
