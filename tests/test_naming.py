"""Tests for naming and fingerprint helpers."""

from datetime import datetime, timezone

import pytest

from lanpaste.errors import InvalidInput
from lanpaste.utils.naming import (
    MARKDOWN_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
    choose_extension,
    content_hash,
    date_bucket,
    is_paste_id,
    new_paste_id,
    request_fingerprint,
    resolve_content_type,
    sanitize_name,
)


class TestSanitizeName:
    """Tests for slug generation."""

    def test_spaces_become_hyphens(self):
        """Spaces map to hyphens and dots are kept."""
        assert sanitize_name("my note.md") == "my-note.md"

    def test_disallowed_characters_collapse(self):
        """Runs of disallowed characters become a single hyphen."""
        assert sanitize_name("a!!b??c") == "a-b-c"
        assert sanitize_name("  hello   world  ") == "hello-world"

    def test_leading_and_trailing_hyphens_stripped(self):
        assert sanitize_name("--draft--") == "draft"

    def test_empty_falls_back_to_default(self):
        """Names with nothing usable become 'paste'."""
        assert sanitize_name("") == "paste"
        assert sanitize_name("   ") == "paste"
        assert sanitize_name("!!!") == "paste"

    def test_truncated_to_80(self):
        assert sanitize_name("x" * 200) == "x" * 80

    @pytest.mark.parametrize("name", ["../etc/passwd", "a/b", "a\\b", "a..b", ".hidden"])
    def test_path_like_names_rejected(self, name):
        """Path separators, parent references and hidden names are invalid."""
        with pytest.raises(InvalidInput):
            sanitize_name(name)

    def test_unicode_replaced(self):
        assert sanitize_name("café notes") == "caf-notes"


class TestExtensionAndContentType:
    """Tests for extension choice and stored content type."""

    def test_markdown_by_name(self):
        assert choose_extension("readme.MD", None) == "md"

    def test_markdown_by_content_type(self):
        assert choose_extension("notes", "text/markdown; charset=utf-8") == "md"

    def test_text_default(self):
        assert choose_extension(None, None) == "txt"
        assert choose_extension("notes", "application/json") == "txt"

    def test_markdown_content_type_normalized(self):
        assert resolve_content_type("md", "text/markdown") == MARKDOWN_CONTENT_TYPE
        assert resolve_content_type("md", None) == MARKDOWN_CONTENT_TYPE

    def test_caller_content_type_kept_for_text(self):
        assert resolve_content_type("txt", "application/json") == "application/json"
        assert resolve_content_type("txt", None) == TEXT_CONTENT_TYPE


class TestFingerprint:
    """Tests for content hashes and request fingerprints."""

    def test_content_hash_is_sha256(self):
        assert content_hash(b"") == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_fingerprint_stable(self):
        sha = content_hash(b"hello")
        assert request_fingerprint("a", "t", None, sha) == request_fingerprint("a", "t", None, sha)

    def test_fingerprint_changes_with_any_field(self):
        """Each defining field contributes to the fingerprint."""
        sha = content_hash(b"hello")
        base = request_fingerprint("a", "t", "text/plain", sha)

        assert request_fingerprint("b", "t", "text/plain", sha) != base
        assert request_fingerprint("a", None, "text/plain", sha) != base
        assert request_fingerprint("a", "t", None, sha) != base
        assert request_fingerprint("a", "t", "text/plain", content_hash(b"bye")) != base


class TestPasteId:
    """Tests for identifier generation."""

    def test_ids_are_valid(self):
        assert is_paste_id(new_paste_id())

    def test_ids_strictly_increase(self):
        """IDs issued in a burst sort in issue order."""
        ids = [new_paste_id() for _ in range(500)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_ids_increase_with_same_timestamp(self):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        first = new_paste_id(now)
        second = new_paste_id(now)
        assert second > first

    @pytest.mark.parametrize(
        "value",
        ["", "not-a-ulid", "../../etc/passwd", "01ARZ3NDEKTSV4RRFFQ69G5FA", "01arz3ndektsv4rrffq69g5fav"],
    )
    def test_rejects_non_ids(self, value):
        assert not is_paste_id(value)


def test_date_bucket_uses_utc():
    when = datetime(2024, 1, 2, 23, 30, tzinfo=timezone.utc)
    assert date_bucket(when) == "2024/01/02"
