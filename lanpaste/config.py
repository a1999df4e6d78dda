"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables prefixed with
``LANPASTE_`` (e.g. ``LANPASTE_DATA_DIR``, ``LANPASTE_PUSH_MODE``).
"""

import ipaddress
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PushMode(str, Enum):
    """How a failed push affects a create request."""

    OFF = "off"  # Never push
    BEST_EFFORT = "best_effort"  # Push, keep the local commit on failure
    STRICT = "strict"  # Push, undo the local commit on failure


@dataclass(frozen=True)
class AppPaths:
    """On-disk layout below the data directory."""

    base: Path
    repo: Path
    run: Path
    tmp: Path
    git_lock: Path
    daemon_lock: Path
    idempotency: Path

    @classmethod
    def from_base(cls, base: Path) -> "AppPaths":
        run = base / "run"
        return cls(
            base=base,
            repo=base / "repo",
            run=run,
            tmp=base / "tmp",
            git_lock=run / "git.lock",
            daemon_lock=run / "daemon.lock",
            idempotency=run / "idempotency",
        )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LANPASTE_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Server Configuration
    # ==========================================================================
    port: int = Field(default=8090, description="HTTP server port")
    host: str = Field(default="0.0.0.0", description="HTTP server host")
    environment: Literal["development", "staging", "production"] = Field(
        default="production", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # ==========================================================================
    # Storage
    # ==========================================================================
    data_dir: Path = Field(
        default=Path("./data"),
        description="Storage root holding repo/, run/ and tmp/",
    )
    max_bytes: int = Field(
        default=1_048_576,  # 1MB
        ge=1,
        description="Maximum accepted paste size in bytes",
    )

    # ==========================================================================
    # Git
    # ==========================================================================
    push_mode: PushMode = Field(default=PushMode.OFF, description="Push policy")
    remote: str = Field(default="origin", min_length=1, description="Remote to push to")
    git_author_name: str = Field(default="LAN Paste", description="Commit author name")
    git_author_email: str = Field(default="paste@lan", description="Commit author email")
    git_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Optional timeout for a single git invocation (seconds)",
    )

    # ==========================================================================
    # Access Control
    # ==========================================================================
    token: str | None = Field(
        default=None, description="Shared secret required to create pastes"
    )
    api_keys_file: Path | None = Field(
        default=None, description="JSON file with scoped API keys"
    )
    allow_cidr: list[str] = Field(
        default_factory=list,
        description="Networks allowed to create pastes (empty allows all)",
    )
    trust_forwarded_for: bool = Field(
        default=False,
        description="Use X-Forwarded-For as the client address (behind a proxy)",
    )

    @field_validator("allow_cidr")
    @classmethod
    def validate_allow_cidr(cls, v: list[str]) -> list[str]:
        """Reject entries that are not valid networks."""
        for entry in v:
            try:
                ipaddress.ip_network(entry, strict=False)
            except ValueError as e:
                raise ValueError(f"invalid CIDR in allow_cidr: {entry}") from e
        return v

    # ==========================================================================
    # Listing
    # ==========================================================================
    recent_default_limit: int = Field(default=50, ge=1, description="Default page size")
    recent_max_limit: int = Field(default=500, ge=1, description="Maximum page size")

    @property
    def paths(self) -> AppPaths:
        """Resolved storage layout."""
        return AppPaths.from_base(self.data_dir)

    @property
    def allowed_networks(self) -> list[ipaddress.IPv4Network | ipaddress.IPv6Network]:
        """Parsed allow-list networks."""
        return [ipaddress.ip_network(entry, strict=False) for entry in self.allow_cidr]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
