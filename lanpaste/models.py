"""Pydantic models and value types for pastes.

These models define the shape of data at different layers:
- CreatePasteInput: A parsed create request (internal)
- PasteMeta: The metadata record persisted at meta/<id>.json
- PasteDraft: Files written for a paste that is about to be committed
- CommitResult: Outcome of committing (and maybe pushing) a draft
- CreatePasteResponse: API response for a created paste
- IdempotencyRecord: Stored response for an idempotency key
- RecentItem: One row of the recent pastes listing
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class CreatePasteInput:
    """A create request after transport-level parsing."""

    content: bytes
    name: str | None = None
    msg: str | None = None
    tag: str | None = None
    content_type: str | None = None
    client_ip: str | None = None
    user_agent: str | None = None


class PasteMeta(BaseModel):
    """Permanent record of one paste.

    Written once at create time. ``commit`` is empty until the paste is
    committed and is filled from git history on read, never written back.
    """

    id: str = Field(..., description="Time-sortable unique identifier (ULID)")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    path: str = Field(..., description="Repository-relative content path")
    size: int = Field(..., ge=0, description="Content size in bytes")
    content_type: str = Field(..., description="Stored content type")
    commit: str = Field(default="", description="Short commit identifier")
    sha256: str = Field(..., description="Hex SHA-256 of the raw content")
    tag: str | None = Field(None, description="Optional free-text tag")
    client_ip: str | None = Field(None, description="Submitter address")
    user_agent: str | None = Field(None, description="Submitter user agent")

    def to_json(self) -> str:
        """Serialize for disk, omitting absent optional fields."""
        return self.model_dump_json(indent=2, exclude_none=True)


@dataclass
class PasteDraft:
    """Files written for a paste, pending commit."""

    id: str
    rel_path: str
    abs_path: Path
    meta_rel_path: str
    meta_path: Path
    content_type: str
    size: int
    sha256: str
    subject: str
    meta: PasteMeta


@dataclass
class CommitResult:
    """Result of committing a draft."""

    commit: str
    pushed: bool = False
    push_error: str | None = None


class CreatePasteResponse(BaseModel):
    """API response for a created paste."""

    id: str = Field(..., description="Paste identifier")
    path: str = Field(..., description="Repository-relative content path")
    commit: str = Field(..., description="Short commit identifier")
    raw_url: str = Field(..., description="URL of the raw bytes")
    view_url: str = Field(
        ...,
        description="Reserved link to a rendered HTML view; not served by this API",
    )
    meta_url: str = Field(..., description="URL of the metadata record")

    @classmethod
    def for_paste(cls, paste_id: str, path: str, commit: str) -> "CreatePasteResponse":
        return cls(
            id=paste_id,
            path=path,
            commit=commit,
            raw_url=f"/api/v1/p/{paste_id}/raw",
            view_url=f"/p/{paste_id}",
            meta_url=f"/api/v1/p/{paste_id}",
        )


class IdempotencyRecord(BaseModel):
    """Response previously returned for an idempotency key."""

    model_config = ConfigDict(extra="ignore")

    request_fingerprint: str
    response: CreatePasteResponse


class RecentItem(BaseModel):
    """Listing row for recent pastes."""

    id: str
    created_at: datetime
    path: str
    commit: str
    tag: str | None = None
    size: int
    content_type: str

    @classmethod
    def from_meta(cls, meta: PasteMeta) -> "RecentItem":
        return cls(
            id=meta.id,
            created_at=meta.created_at,
            path=meta.path,
            commit=meta.commit,
            tag=meta.tag,
            size=meta.size,
            content_type=meta.content_type,
        )


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
