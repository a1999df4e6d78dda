"""Tests for the metadata reader."""

from datetime import datetime, timedelta, timezone

import pytest

from lanpaste.config import PushMode
from lanpaste.errors import NotFound
from lanpaste.models import CreatePasteInput, PasteMeta
from lanpaste.services.drafts import build_draft
from lanpaste.services.git_repo import GitRepository
from lanpaste.services.metadata import read_meta, read_paste, read_recent
from lanpaste.services.orchestrator import commit_paste


async def create(repo: GitRepository, content: bytes, tag: str | None = None) -> str:
    draft = build_draft(repo.repo_dir, CreatePasteInput(content=content, tag=tag))
    await commit_paste(repo, draft, PushMode.OFF, "origin")
    return draft.id


class TestReadMeta:
    """Tests for read_meta."""

    @pytest.mark.asyncio
    async def test_commit_hydrated(self, repo: GitRepository):
        """The stored empty commit id is filled from history."""
        draft = build_draft(repo.repo_dir, CreatePasteInput(content=b"hello"))
        result = await commit_paste(repo, draft, PushMode.OFF, "origin")

        meta = await read_meta(repo.repo_dir, repo, draft.id)

        assert meta.commit == result.commit
        assert meta.size == 5
        assert '"commit": ""' in draft.meta_path.read_text()

    @pytest.mark.asyncio
    async def test_uncommitted_has_empty_commit(self, repo: GitRepository):
        draft = build_draft(repo.repo_dir, CreatePasteInput(content=b"hello"))

        meta = await read_meta(repo.repo_dir, repo, draft.id)

        assert meta.commit == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("paste_id", ["01HZX3V6Y9K2M4N5P6Q7R8S9T0", "../README", "nope"])
    async def test_not_found(self, repo: GitRepository, paste_id: str):
        with pytest.raises(NotFound):
            await read_meta(repo.repo_dir, repo, paste_id)

    @pytest.mark.asyncio
    async def test_read_paste(self, repo: GitRepository):
        paste_id = await create(repo, b"raw \x00 bytes")

        meta = await read_meta(repo.repo_dir, repo, paste_id)

        assert read_paste(repo.repo_dir, meta) == b"raw \x00 bytes"


class TestReadRecent:
    """Tests for read_recent."""

    @pytest.mark.asyncio
    async def test_newest_first(self, repo: GitRepository):
        ids = [await create(repo, f"paste {i}".encode()) for i in range(3)]

        recent = await read_recent(repo.repo_dir, repo, 10)

        assert [m.id for m in recent] == list(reversed(ids))
        assert all(m.commit for m in recent)

    @pytest.mark.asyncio
    async def test_limit(self, repo: GitRepository):
        ids = [await create(repo, f"paste {i}".encode()) for i in range(3)]

        recent = await read_recent(repo.repo_dir, repo, 2)

        assert [m.id for m in recent] == [ids[2], ids[1]]
        assert await read_recent(repo.repo_dir, repo, 0) == []

    @pytest.mark.asyncio
    async def test_tag_filter_is_exact(self, repo: GitRepository):
        work = await create(repo, b"a", tag="work")
        await create(repo, b"b", tag="workshop")
        await create(repo, b"c")

        recent = await read_recent(repo.repo_dir, repo, 10, tag="work")

        assert [m.id for m in recent] == [work]

    @pytest.mark.asyncio
    async def test_skips_bad_records(self, repo: GitRepository):
        """Corrupt metadata files are skipped, not fatal."""
        good = await create(repo, b"ok")
        (repo.repo_dir / "meta" / "broken.json").write_text("{")

        recent = await read_recent(repo.repo_dir, repo, 10)

        assert [m.id for m in recent] == [good]

    @pytest.mark.asyncio
    async def test_orders_by_created_at(self, repo: GitRepository):
        """Ordering follows creation time even when ids disagree."""
        now = datetime.now(timezone.utc)
        meta_dir = repo.repo_dir / "meta"
        for paste_id, offset in (("01HZX3V6Y9K2M4N5P6Q7R8S9T0", 0), ("01HZX3V6Y9K2M4N5P6Q7R8S9T1", -60)):
            meta = PasteMeta(
                id=paste_id,
                created_at=now + timedelta(seconds=offset),
                path=f"pastes/x/{paste_id}.txt",
                size=1,
                content_type="text/plain; charset=utf-8",
                sha256="0" * 64,
            )
            (meta_dir / f"{paste_id}.json").write_text(meta.to_json())

        recent = await read_recent(repo.repo_dir, repo, 10)

        assert [m.id for m in recent] == ["01HZX3V6Y9K2M4N5P6Q7R8S9T0", "01HZX3V6Y9K2M4N5P6Q7R8S9T1"]

    @pytest.mark.asyncio
    async def test_empty_repository(self, repo: GitRepository):
        assert await read_recent(repo.repo_dir, repo, 10) == []
