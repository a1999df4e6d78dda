"""Paste API endpoints.

Provides endpoints to:
- Create a paste from a raw request body
- Get a paste's metadata or raw bytes
- List recent pastes
- Describe the API
"""

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status
from pydantic import BaseModel

from lanpaste.errors import TooLarge
from lanpaste.models import (
    CreatePasteInput,
    CreatePasteResponse,
    ErrorResponse,
    PasteMeta,
    RecentItem,
)
from lanpaste.services.access import Scope
from lanpaste.services.idempotency import normalize_key
from lanpaste.services.paste_service import PasteService, get_paste_service
from lanpaste.utils.logging import get_logger
from lanpaste.utils.security import check_cidr, parse_client_ip, verify_token

logger = get_logger(__name__)

router = APIRouter(tags=["pastes"])


def client_address(request: Request, service: PasteService) -> str | None:
    """Best known client address for a request.

    ``X-Forwarded-For`` is only honored when the service is configured to
    trust it.
    """
    if service.settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = parse_client_ip(forwarded)
            return str(ip) if ip is not None else None

    if request.client is None:
        return None
    ip = parse_client_ip(request.client.host)
    return str(ip) if ip is not None else None


async def read_body(request: Request, max_bytes: int) -> bytes:
    """Read the request body, refusing it as soon as it exceeds ``max_bytes``.

    A declared Content-Length over the limit is rejected before reading;
    chunked bodies are counted while streaming.

    Raises:
        TooLarge: If the body is larger than ``max_bytes``
    """
    declared = request.headers.get("Content-Length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise TooLarge("request body exceeds max-bytes")

    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise TooLarge("request body exceeds max-bytes")
        chunks.append(chunk)
    return b"".join(chunks)


def require_scope(scope: Scope):
    """Build a dependency that admits requests carrying an API key with ``scope``."""

    async def dependency(
        service: PasteService = Depends(get_paste_service),
        x_api_key: str | None = Header(None),
    ) -> None:
        service.api_keys.authorize(x_api_key, scope)

    return dependency


async def authorize_create(
    service: PasteService = Depends(get_paste_service),
    x_api_key: str | None = Header(None),
    x_paste_token: str | None = Header(None),
) -> None:
    """Gate paste creation.

    With API keys configured the key must carry ``paste:create``; otherwise
    the shared token (if any) must match.
    """
    if service.api_keys.enabled:
        service.api_keys.authorize(x_api_key, Scope.PASTE_CREATE)
    else:
        verify_token(service.settings.token, x_paste_token)


class ApiIndex(BaseModel):
    """Endpoint listing."""

    name: str = "lanpaste"
    version: str = "v1"
    endpoints: list[str]


@router.get(
    "/api",
    response_model=ApiIndex,
    summary="List API endpoints",
    dependencies=[Depends(require_scope(Scope.API_INDEX))],
)
async def api_index() -> ApiIndex:
    return ApiIndex(
        endpoints=[
            "/api/v1/paste (POST)",
            "/api/v1/p/{id} (GET)",
            "/api/v1/p/{id}/raw (GET)",
            "/api/v1/recent?n=50&tag=... (GET)",
        ]
    )


@router.post(
    "/api/v1/paste",
    response_model=CreatePasteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a paste",
    description="""
    Stores the raw request body as a new paste and commits it to the
    backing git repository.

    Send an `Idempotency-Key` header to make retries safe: a repeated
    request with the same key and payload returns the first response
    with status 200 instead of creating a second paste.

    `view_url` is a reserved link for an HTML view that this service does
    not serve; use `raw_url` or `meta_url` to read the paste back.
    """,
    responses={
        200: {"description": "Replayed response for a known idempotency key"},
        400: {"model": ErrorResponse, "description": "Invalid name"},
        401: {"model": ErrorResponse, "description": "Missing or invalid credentials"},
        403: {"model": ErrorResponse, "description": "Client or key not allowed"},
        409: {"model": ErrorResponse, "description": "Concurrent write or key reuse"},
        413: {"model": ErrorResponse, "description": "Body too large"},
        429: {"model": ErrorResponse, "description": "API key rate limit exceeded"},
    },
    dependencies=[Depends(authorize_create)],
)
async def create_paste(
    request: Request,
    response: Response,
    name: str | None = Query(None, description="Display name; drives the slug and extension"),
    msg: str | None = Query(None, description="Commit message body"),
    tag: str | None = Query(None, description="Free-text tag"),
    content_type: str | None = Header(None),
    user_agent: str | None = Header(None),
    idempotency_key: str | None = Header(None),
    service: PasteService = Depends(get_paste_service),
) -> CreatePasteResponse:
    """Create a paste, or replay the stored response for an idempotency key."""
    client_ip = client_address(request, service)
    check_cidr(service.settings.allowed_networks, parse_client_ip(client_ip))

    body = await read_body(request, service.settings.max_bytes)

    data = CreatePasteInput(
        content=body,
        name=name,
        msg=msg,
        tag=tag,
        content_type=content_type,
        client_ip=client_ip,
        user_agent=user_agent,
    )

    outcome = await service.create_paste(data, normalize_key(idempotency_key))
    if outcome.replayed:
        response.status_code = status.HTTP_200_OK
    else:
        logger.info(
            f"Created paste {outcome.response.id} ({len(body)} bytes)",
            extra={"paste_id": outcome.response.id, "client_ip": client_ip},
        )
    return outcome.response


@router.get(
    "/api/v1/p/{paste_id}",
    response_model=PasteMeta,
    response_model_exclude_none=True,
    summary="Get paste metadata",
    responses={404: {"model": ErrorResponse, "description": "Paste not found"}},
    dependencies=[Depends(require_scope(Scope.PASTE_READ))],
)
async def get_meta(
    paste_id: str,
    service: PasteService = Depends(get_paste_service),
) -> PasteMeta:
    return await service.get_meta(paste_id)


@router.get(
    "/api/v1/p/{paste_id}/raw",
    response_class=Response,
    summary="Download raw paste bytes",
    responses={404: {"model": ErrorResponse, "description": "Paste not found"}},
    dependencies=[Depends(require_scope(Scope.PASTE_READ))],
)
async def get_raw(
    paste_id: str,
    service: PasteService = Depends(get_paste_service),
) -> Response:
    """Serve stored bytes as a download, never rendered inline."""
    _, content = await service.get_raw(paste_id)
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": "attachment",
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.get(
    "/api/v1/recent",
    response_model=list[RecentItem],
    summary="List recent pastes",
    dependencies=[Depends(require_scope(Scope.RECENT_READ))],
)
async def recent(
    n: int | None = Query(None, ge=0, description="Number of pastes to return"),
    tag: str | None = Query(None, description="Only pastes with exactly this tag"),
    service: PasteService = Depends(get_paste_service),
) -> list[RecentItem]:
    settings = service.settings
    limit = min(settings.recent_default_limit if n is None else n, settings.recent_max_limit)
    metas = await service.recent(limit, tag)
    return [RecentItem.from_meta(meta) for meta in metas]
