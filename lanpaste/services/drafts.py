"""Paste draft builder.

Writes a paste's content file and metadata record into the working tree and
describes what was written. The draft is committed right after by the
orchestrator; if writing fails nothing is cleaned up here.
"""

from datetime import datetime, timezone
from pathlib import Path

from lanpaste.errors import Internal
from lanpaste.models import CreatePasteInput, PasteDraft, PasteMeta
from lanpaste.utils.logging import get_logger
from lanpaste.utils.naming import (
    DEFAULT_SLUG,
    choose_extension,
    content_hash,
    date_bucket,
    new_paste_id,
    resolve_content_type,
    sanitize_name,
)

PASTES_DIR = "pastes"
META_DIR = "meta"


def meta_rel_path(paste_id: str) -> str:
    """Repository-relative metadata path for a paste id."""
    return f"{META_DIR}/{paste_id}.json"


def commit_subject(paste_id: str, slug: str, tag: str | None, msg: str | None) -> str:
    """Commit subject for a paste; an explicit message wins."""
    if msg:
        return msg
    subject = f"paste: {paste_id} {slug}"
    if tag:
        subject += f" [tag:{tag}]"
    return subject


def build_draft(repo_dir: Path, data: CreatePasteInput) -> PasteDraft:
    """Write a paste's files and return the pending draft.

    Args:
        repo_dir: Repository working tree root
        data: Parsed create request

    Returns:
        PasteDraft describing the written files

    Raises:
        InvalidInput: If the name cannot be sanitized
        Internal: If any file cannot be written
    """
    created_at = datetime.now(timezone.utc)
    paste_id = new_paste_id(created_at)
    log = get_logger(__name__, paste_id=paste_id)

    slug = sanitize_name(data.name if data.name is not None else DEFAULT_SLUG)
    extension = choose_extension(data.name, data.content_type)
    rel_path = f"{PASTES_DIR}/{date_bucket(created_at)}/{paste_id}__{slug}.{extension}"
    abs_path = repo_dir / rel_path

    sha256 = content_hash(data.content)
    content_type = resolve_content_type(extension, data.content_type)

    meta_rel = meta_rel_path(paste_id)
    meta_path = repo_dir / meta_rel
    meta = PasteMeta(
        id=paste_id,
        created_at=created_at,
        path=rel_path,
        size=len(data.content),
        content_type=content_type,
        commit="",
        sha256=sha256,
        tag=data.tag,
        client_ip=data.client_ip,
        user_agent=data.user_agent,
    )

    try:
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        meta_path.parent.mkdir(parents=True, exist_ok=True)
        abs_path.write_bytes(data.content)
        meta_path.write_text(meta.to_json())
    except OSError as e:
        raise Internal.io("write paste", e) from e

    log.debug(f"Wrote draft {rel_path} ({len(data.content)} bytes)")

    return PasteDraft(
        id=paste_id,
        rel_path=rel_path,
        abs_path=abs_path,
        meta_rel_path=meta_rel,
        meta_path=meta_path,
        content_type=content_type,
        size=len(data.content),
        sha256=sha256,
        subject=commit_subject(paste_id, slug, data.tag, data.msg),
        meta=meta,
    )
