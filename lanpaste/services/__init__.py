"""Service layer for lanpaste."""

from lanpaste.services.access import ApiKeyStore
from lanpaste.services.git_repo import GitRepository
from lanpaste.services.idempotency import IdempotencyLedger
from lanpaste.services.locks import RepositoryLock
from lanpaste.services.paste_service import PasteService

__all__ = [
    "ApiKeyStore",
    "GitRepository",
    "IdempotencyLedger",
    "RepositoryLock",
    "PasteService",
]
