"""Liveness and readiness endpoints.

- Liveness: is the process serving requests?
- Readiness: is the repository present and the git lock obtainable?
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from lanpaste.errors import ServiceUnavailable
from lanpaste.services.paste_service import get_paste_service

router = APIRouter(tags=["health"])


# Track readiness state
_ready = False


def set_ready(ready: bool) -> None:
    """Set the readiness state.

    Called by the application lifecycle hooks.
    """
    global _ready
    _ready = ready


@router.get(
    "/healthz",
    response_class=PlainTextResponse,
    summary="Liveness check",
)
async def healthz() -> str:
    """Always ``ok`` while the server is running."""
    return "ok"


@router.get(
    "/readyz",
    response_class=PlainTextResponse,
    summary="Readiness check",
    description="Returns 200 when the repository is usable and no create is wedged, 503 otherwise.",
)
async def readyz() -> str:
    if not _ready:
        raise ServiceUnavailable("service starting")

    await get_paste_service().ready()
    return "ok"
