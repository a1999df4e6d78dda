"""Error kinds surfaced by the paste engine.

Every core operation raises one of these instead of leaking OSError,
subprocess or JSON errors. The HTTP layer maps each kind 1:1 to a status
code and an ``{"error", "message"}`` body.
"""

from fastapi import status


class LanPasteError(Exception):
    """Base class for all surfaced errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class InvalidInput(LanPasteError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "bad_request"


class Unauthorized(LanPasteError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"


class Forbidden(LanPasteError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFound(LanPasteError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class Conflict(LanPasteError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class TooLarge(LanPasteError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    code = "too_large"


class TooManyRequests(LanPasteError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "too_many_requests"


class Internal(LanPasteError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal"

    @classmethod
    def io(cls, context: str, err: OSError) -> "Internal":
        """Wrap a filesystem error with what was being attempted."""
        return cls(f"{context}: {err}")


class ServiceUnavailable(LanPasteError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "service_unavailable"
