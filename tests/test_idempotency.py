"""Tests for the idempotency ledger."""

from pathlib import Path

import pytest

from lanpaste.errors import Conflict, Internal
from lanpaste.models import CreatePasteResponse
from lanpaste.services.idempotency import IdempotencyLedger, normalize_key


@pytest.fixture
def ledger(tmp_path: Path) -> IdempotencyLedger:
    return IdempotencyLedger(tmp_path / "idempotency")


@pytest.fixture
def response() -> CreatePasteResponse:
    return CreatePasteResponse.for_paste(
        "01HZX3V6Y9K2M4N5P6Q7R8S9T0", "pastes/2024/05/01/01HZX3V6Y9K2M4N5P6Q7R8S9T0__a.txt", "abc123def456"
    )


class TestNormalizeKey:
    """Tests for header normalization."""

    def test_trims(self):
        assert normalize_key("  key-1 ") == "key-1"

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_means_none(self, raw):
        assert normalize_key(raw) is None


class TestIdempotencyLedger:
    """Tests for IdempotencyLedger."""

    def test_unknown_key(self, ledger: IdempotencyLedger):
        assert ledger.read("never-used") is None
        assert ledger.replay("never-used", "fp") is None

    def test_replay_same_fingerprint(self, ledger: IdempotencyLedger, response: CreatePasteResponse):
        """A matching fingerprint returns the stored response unchanged."""
        ledger.record("key-1", "fp-a", response)

        assert ledger.replay("key-1", "fp-a") == response

    def test_different_fingerprint_conflicts(self, ledger: IdempotencyLedger, response: CreatePasteResponse):
        ledger.record("key-1", "fp-a", response)

        with pytest.raises(Conflict, match="different payload"):
            ledger.replay("key-1", "fp-b")

    def test_file_named_by_key_hash(self, ledger: IdempotencyLedger, response: CreatePasteResponse):
        """Keys with path characters never escape the store directory."""
        ledger.record("../../etc/passwd", "fp", response)

        files = list(ledger.store_dir.iterdir())
        assert len(files) == 1
        assert files[0].suffix == ".json"
        assert len(files[0].stem) == 64

    def test_no_temp_files_left(self, ledger: IdempotencyLedger, response: CreatePasteResponse):
        ledger.record("key-1", "fp", response)
        ledger.record("key-2", "fp", response)

        assert all(p.suffix == ".json" for p in ledger.store_dir.iterdir())

    def test_corrupt_record(self, ledger: IdempotencyLedger, response: CreatePasteResponse):
        """An unreadable record is an internal error, not a fresh key."""
        ledger.record("key-1", "fp", response)
        next(ledger.store_dir.iterdir()).write_text("{not json")

        with pytest.raises(Internal):
            ledger.replay("key-1", "fp")
