"""Paste service: the write path and read path behind the API.

Owns everything tied to one data directory (git adapter, idempotency
ledger, API keys, daemon lock) and coordinates a create:

1. Take the git lock (Conflict if another create is in flight)
2. Replay or reject via the idempotency ledger
3. Write the draft files
4. Commit and apply the push policy
5. Record the response under the idempotency key

Steps 1-5 run as one shielded task: cancelling the caller does not stop a
create halfway, so the lock is only released once the sequence finished.
Reads never lock.
"""

import asyncio
from dataclasses import dataclass

from lanpaste.config import Settings
from lanpaste.errors import ServiceUnavailable
from lanpaste.models import CreatePasteInput, CreatePasteResponse, PasteMeta
from lanpaste.services.access import ApiKeyStore
from lanpaste.services.drafts import build_draft
from lanpaste.services.git_repo import GitRepository
from lanpaste.services.idempotency import IdempotencyLedger
from lanpaste.services.locks import RepositoryLock
from lanpaste.services.metadata import read_meta, read_paste, read_recent
from lanpaste.services.orchestrator import commit_paste
from lanpaste.services.preflight import check_ready, run_preflight
from lanpaste.utils.logging import get_logger
from lanpaste.utils.naming import content_hash, request_fingerprint

logger = get_logger(__name__)


@dataclass
class CreateOutcome:
    """Response for a create, and whether it was replayed."""

    response: CreatePasteResponse
    replayed: bool = False


class PasteService:
    """Coordinates paste persistence for one data directory."""

    def __init__(self, settings: Settings, api_keys: ApiKeyStore | None = None):
        self.settings = settings
        self.paths = settings.paths
        self.git = GitRepository.from_settings(settings)
        self.ledger = IdempotencyLedger(self.paths.idempotency)
        self.api_keys = api_keys if api_keys is not None else ApiKeyStore()
        self._daemon_lock: RepositoryLock | None = None
        self._pending: set[asyncio.Task] = set()

    async def start(self) -> None:
        """Run preflight and claim the data directory."""
        self._daemon_lock = await run_preflight(self.settings)

    async def shutdown(self) -> None:
        """Wait for in-flight creates, then release the daemon lock."""
        if self._pending:
            logger.info(f"Waiting for {len(self._pending)} in-flight creates")
            await asyncio.wait(set(self._pending))

        if self._daemon_lock is not None:
            self._daemon_lock.release()
            self._daemon_lock = None
            logger.info("Released daemon lock")

    async def create_paste(
        self,
        data: CreatePasteInput,
        idempotency_key: str | None = None,
    ) -> CreateOutcome:
        """Persist a paste, honoring an optional idempotency key.

        The locked sequence runs in its own task under ``asyncio.shield``.
        If the caller is cancelled the create still finishes (commit, push
        policy and ledger record) before the git lock is released.

        Args:
            data: Parsed create request
            idempotency_key: Trimmed, non-empty key or None

        Returns:
            CreateOutcome; ``replayed`` is True when a stored response was
            returned without committing anything

        Raises:
            Conflict: If another create holds the git lock, or the key was
                used for a different request
            InvalidInput: If the name is invalid
            Internal: If writing, committing or a strict push fails
        """
        task = asyncio.ensure_future(self._create_locked(data, idempotency_key))
        self._pending.add(task)
        task.add_done_callback(self._create_done)
        return await asyncio.shield(task)

    def _create_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        # Mark the error retrieved; a cancelled caller no longer awaits it
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Create finished with {task.exception()!r}")

    async def _create_locked(
        self,
        data: CreatePasteInput,
        idempotency_key: str | None,
    ) -> CreateOutcome:
        log = get_logger(__name__, idempotency_key=idempotency_key)

        with RepositoryLock.acquire(self.paths.git_lock):
            fingerprint = None
            if idempotency_key is not None:
                fingerprint = request_fingerprint(
                    data.name, data.tag, data.content_type, content_hash(data.content)
                )
                stored = self.ledger.replay(idempotency_key, fingerprint)
                if stored is not None:
                    log.info(f"Replaying stored response for paste {stored.id}")
                    return CreateOutcome(response=stored, replayed=True)

            draft = build_draft(self.paths.repo, data)
            result = await commit_paste(
                self.git, draft, self.settings.push_mode, self.settings.remote
            )

            if result.push_error:
                log.warning(f"Best-effort push failed: {result.push_error}")

            response = CreatePasteResponse.for_paste(draft.id, draft.rel_path, result.commit)

            if idempotency_key is not None and fingerprint is not None:
                self.ledger.record(idempotency_key, fingerprint, response)

        return CreateOutcome(response=response)

    async def get_meta(self, paste_id: str) -> PasteMeta:
        return await read_meta(self.paths.repo, self.git, paste_id)

    async def get_raw(self, paste_id: str) -> tuple[PasteMeta, bytes]:
        meta = await self.get_meta(paste_id)
        return meta, read_paste(self.paths.repo, meta)

    async def recent(self, limit: int, tag: str | None = None) -> list[PasteMeta]:
        return await read_recent(self.paths.repo, self.git, limit, tag)

    async def ready(self) -> None:
        await check_ready(self.git, self.paths.git_lock)


# Global service instance
_paste_service: PasteService | None = None


async def init_paste_service(settings: Settings) -> PasteService:
    """Create, start and register the process-wide paste service.

    Raises:
        Conflict: If another instance is serving the same data directory
        Internal: If the API key file is invalid or setup fails
    """
    global _paste_service

    api_keys = ApiKeyStore.from_file(settings.api_keys_file)
    service = PasteService(settings, api_keys)
    await service.start()
    _paste_service = service
    return service


def get_paste_service() -> PasteService:
    """Get the registered paste service.

    Raises:
        ServiceUnavailable: If the service has not been started
    """
    if _paste_service is None:
        raise ServiceUnavailable("paste service not initialized")
    return _paste_service


async def shutdown_paste_service() -> None:
    """Stop and unregister the paste service."""
    global _paste_service

    if _paste_service is not None:
        await _paste_service.shutdown()
        _paste_service = None
