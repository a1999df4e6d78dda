"""HTTP API for lanpaste."""

from lanpaste.api.routes import health, pastes

__all__ = ["health", "pastes"]
