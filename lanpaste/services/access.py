"""Scoped API keys with per-key request quotas.

Keys are loaded from a JSON file::

    {"keys": [{"name": "ci", "key": "...", "scopes": ["paste:create"],
               "max_requests_per_minute": 30}]}

When no key file is configured the store is disabled and every request is
allowed through (the shared token then gates paste creation instead).
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, Field, ValidationError

from lanpaste.errors import Forbidden, Internal, TooManyRequests, Unauthorized
from lanpaste.utils.logging import get_logger
from lanpaste.utils.security import constant_time_compare

logger = get_logger(__name__)

API_KEY_HEADER = "X-API-Key"
WILDCARD_SCOPE = "*"


class Scope(str, Enum):
    """Permission required by an operation."""

    API_INDEX = "api:index"
    PASTE_CREATE = "paste:create"
    PASTE_READ = "paste:read"
    RECENT_READ = "recent:read"


class ApiKeyEntry(BaseModel):
    """One configured API key."""

    name: str | None = None
    key: str
    scopes: list[str] = Field(default_factory=list)
    max_requests_per_minute: int | None = None

    @property
    def identity(self) -> str:
        """Rate-limit bucket name; unnamed keys use a short key prefix."""
        return self.name or f"key:{self.key[:8]}"

    def allows(self, scope: Scope) -> bool:
        return any(s == WILDCARD_SCOPE or s == scope.value for s in self.scopes)


class ApiKeysFile(BaseModel):
    keys: list[ApiKeyEntry]


@dataclass
class RateWindow:
    """Request count within one wall-clock minute."""

    minute: int
    count: int = 0


class ApiKeyStore:
    """In-memory API key registry and rate limiter."""

    def __init__(
        self,
        entries: list[ApiKeyEntry] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the store.

        Args:
            entries: Validated key entries; empty disables the store
            clock: Source of the current Unix time (seconds)
        """
        self._entries = list(entries or [])
        self._clock = clock
        self._counters: dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, path: Path | None) -> "ApiKeyStore":
        """Load and validate a key file.

        Raises:
            Internal: If the file is unreadable or an entry is invalid
        """
        if path is None:
            return cls()

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise Internal.io("read api key file", e) from e

        try:
            parsed = ApiKeysFile.model_validate_json(raw)
        except ValidationError as e:
            raise Internal(f"parse api key file: {e}") from e

        seen: set[str] = set()
        for entry in parsed.keys:
            label = entry.name or "unnamed"
            if not entry.key.strip():
                raise Internal("api key entry has empty key")
            if not entry.scopes:
                raise Internal(f"api key '{label}' must include at least one scope")
            if entry.max_requests_per_minute is not None and entry.max_requests_per_minute <= 0:
                raise Internal(
                    f"api key '{label}' has invalid "
                    f"max_requests_per_minute={entry.max_requests_per_minute}"
                )
            if entry.key in seen:
                raise Internal("duplicate api key in api key file")
            seen.add(entry.key)

        logger.info(f"Loaded {len(parsed.keys)} API keys from {path}")
        return cls(parsed.keys)

    @property
    def enabled(self) -> bool:
        return bool(self._entries)

    def resolve_key(self, provided: str) -> ApiKeyEntry | None:
        """Find the entry for a presented key.

        Every entry is compared so lookup time does not depend on which
        key matched.
        """
        found = None
        for entry in self._entries:
            if constant_time_compare(entry.key, provided):
                found = entry
        return found

    def enforce_rate_limit(self, entry: ApiKeyEntry) -> None:
        """Count a request against the key's per-minute ceiling.

        Raises:
            TooManyRequests: If the ceiling for the current minute is reached
        """
        limit = entry.max_requests_per_minute
        if limit is None:
            return

        now_minute = int(self._clock() // 60)
        with self._lock:
            window = self._counters.get(entry.identity)
            if window is None or window.minute != now_minute:
                window = RateWindow(minute=now_minute)
                self._counters[entry.identity] = window

            if window.count >= limit:
                raise TooManyRequests("api key rate limit exceeded")
            window.count += 1

    def authorize(self, provided: str | None, scope: Scope) -> ApiKeyEntry | None:
        """Admit a request that needs a scope.

        Args:
            provided: Value of the X-API-Key header
            scope: Scope the operation requires

        Returns:
            The matched key, or None when the store is disabled

        Raises:
            Unauthorized: If the key is missing or unknown
            Forbidden: If the key lacks the scope
            TooManyRequests: If the key's quota is exhausted
        """
        if not self.enabled:
            return None

        if not provided:
            raise Unauthorized("missing or invalid API key")

        entry = self.resolve_key(provided)
        if entry is None:
            raise Unauthorized("missing or invalid API key")

        if not entry.allows(scope):
            raise Forbidden(f"api key lacks required scope '{scope.value}'")

        self.enforce_rate_limit(entry)
        return entry
