"""Fingerprinting and naming helpers for pastes.

Everything here is pure: slugs, extensions, content hashes, request
fingerprints and time-sortable identifiers. Nothing touches the filesystem.
"""

import hashlib
import json
import threading
from datetime import datetime, timezone

from ulid import ULID

from lanpaste.errors import InvalidInput

MAX_SLUG_LEN = 80
DEFAULT_SLUG = "paste"

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

_SLUG_CHARS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789._-"
)

_id_lock = threading.Lock()
_last_id: ULID | None = None


def sanitize_name(name: str) -> str:
    """Turn a user supplied paste name into a filesystem-safe slug.

    Args:
        name: Name as given by the client (e.g. ``"my note.md"``)

    Returns:
        Slug containing only ``[A-Za-z0-9._-]``, without consecutive or
        leading/trailing hyphens, at most 80 characters

    Raises:
        InvalidInput: If the name looks like a path or a hidden file
    """
    if "/" in name or "\\" in name or ".." in name:
        raise InvalidInput("invalid name")
    if name.startswith("."):
        raise InvalidInput("invalid name")

    normalized = name.strip().replace(" ", "-")
    if not normalized:
        return DEFAULT_SLUG

    slug = "".join(c if c in _SLUG_CHARS else "-" for c in normalized)
    while "--" in slug:
        slug = slug.replace("--", "-")
    slug = slug.strip("-")

    if not slug:
        return DEFAULT_SLUG
    return slug[:MAX_SLUG_LEN]


def choose_extension(name: str | None, content_type: str | None) -> str:
    """Pick ``md`` when either the content type or the name says markdown."""
    is_md_type = bool(content_type) and "text/markdown" in content_type.lower()
    is_md_name = bool(name) and name.lower().endswith(".md")
    return "md" if is_md_type or is_md_name else "txt"


def resolve_content_type(extension: str, content_type: str | None) -> str:
    """Content type stored for a paste.

    Markdown is always normalized; anything else keeps the caller's value.
    """
    if extension == "md":
        return MARKDOWN_CONTENT_TYPE
    return content_type or TEXT_CONTENT_TYPE


def content_hash(data: bytes) -> str:
    """SHA-256 hex digest of the raw payload."""
    return hashlib.sha256(data).hexdigest()


def request_fingerprint(
    name: str | None,
    tag: str | None,
    content_type: str | None,
    sha256: str,
) -> str:
    """Stable digest of the parts of a create request that define the paste.

    Transport details (headers, client address, user agent) are left out so
    a retried request fingerprints identically.
    """
    canonical = json.dumps(
        {
            "name": name,
            "tag": tag,
            "content_type": content_type,
            "sha256": sha256,
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode()).hexdigest()


def new_paste_id(now: datetime | None = None) -> str:
    """Generate a ULID that sorts after every ID issued before it.

    ULIDs created within the same millisecond are random in their low bits,
    so the last issued value is tracked and bumped when needed.
    """
    global _last_id

    if now is None:
        now = datetime.now(timezone.utc)

    with _id_lock:
        candidate = ULID.from_datetime(now)
        if _last_id is not None and int(candidate) <= int(_last_id):
            candidate = ULID.from_int(int(_last_id) + 1)
        _last_id = candidate
        return str(candidate)


def is_paste_id(value: str) -> bool:
    """Check that a value is a canonical ULID string."""
    if len(value) != 26:
        return False
    try:
        return str(ULID.from_str(value)) == value
    except ValueError:
        return False


def date_bucket(when: datetime) -> str:
    """``YYYY/MM/DD`` directory for a timestamp, in UTC."""
    return when.astimezone(timezone.utc).strftime("%Y/%m/%d")
