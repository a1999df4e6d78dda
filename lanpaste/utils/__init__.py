"""Utility modules for lanpaste."""

from lanpaste.utils.logging import get_logger, setup_logging
from lanpaste.utils.naming import content_hash, request_fingerprint, sanitize_name
from lanpaste.utils.security import check_cidr, verify_token

__all__ = [
    "get_logger",
    "setup_logging",
    "content_hash",
    "request_fingerprint",
    "sanitize_name",
    "check_cidr",
    "verify_token",
]
