"""Idempotency ledger.

Maps a client supplied Idempotency-Key to the fingerprint of the request
that first used it and the response that was returned. One JSON file per
key, named by the SHA-256 of the key so arbitrary strings are safe on disk.

Records are written only after a successful create and never updated or
expired. Callers must hold the git lock around read-check-create-write.
"""

import hashlib
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from lanpaste.errors import Conflict, Internal
from lanpaste.models import CreatePasteResponse, IdempotencyRecord


def normalize_key(raw: str | None) -> str | None:
    """Trim a header value; empty keys mean no idempotency."""
    if raw is None:
        return None
    key = raw.strip()
    return key or None


class IdempotencyLedger:
    """File-backed store of idempotency records."""

    def __init__(self, store_dir: Path):
        self.store_dir = store_dir

    def _record_path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode()).hexdigest()
        return self.store_dir / f"{digest}.json"

    def read(self, key: str) -> IdempotencyRecord | None:
        """Load the record for a key.

        Returns:
            The stored record, or None if the key has not been used

        Raises:
            Internal: If the record exists but cannot be read or parsed
        """
        path = self._record_path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise Internal.io("read idempotency record", e) from e

        try:
            return IdempotencyRecord.model_validate_json(raw)
        except ValidationError as e:
            raise Internal(f"parse idempotency record: {e}") from e

    def write(self, key: str, record: IdempotencyRecord) -> None:
        """Persist a record for a key.

        The file is replaced atomically so a crash never leaves a partial
        record behind.

        Raises:
            Internal: If the record cannot be written
        """
        path = self._record_path(key)
        try:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.store_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(record.model_dump_json())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise Internal.io("write idempotency record", e) from e

    def replay(self, key: str, fingerprint: str) -> CreatePasteResponse | None:
        """Check a key before creating a paste.

        Args:
            key: Idempotency key
            fingerprint: Fingerprint of the incoming request

        Returns:
            The stored response when the request is a replay, or None when
            the key is unused

        Raises:
            Conflict: If the key was used for a different request
        """
        record = self.read(key)
        if record is None:
            return None

        if record.request_fingerprint != fingerprint:
            raise Conflict("idempotency key reuse with different payload")

        return record.response

    def record(self, key: str, fingerprint: str, response: CreatePasteResponse) -> None:
        """Remember the response for a successful create."""
        self.write(
            key,
            IdempotencyRecord(request_fingerprint=fingerprint, response=response),
        )
