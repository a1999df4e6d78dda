"""Security utilities for token and client address checks.

The shared token and the CIDR allow-list both gate the write path. Token
comparison is constant-time to avoid leaking the secret through timing.
"""

import hmac
import ipaddress
from typing import Iterable

from lanpaste.errors import Forbidden, Unauthorized

IPNetwork = ipaddress.IPv4Network | ipaddress.IPv6Network
IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time to prevent timing attacks.

    Args:
        a: First string
        b: Second string

    Returns:
        True if strings are equal
    """
    return hmac.compare_digest(a.encode(), b.encode())


def verify_token(expected: str | None, provided: str | None) -> None:
    """Check a request token against the configured shared secret.

    Args:
        expected: Configured token, or None when the service is open
        provided: Token from the request header

    Raises:
        Unauthorized: If a token is configured and the request does not match
    """
    if expected is None:
        return

    if not constant_time_compare(expected, provided or ""):
        raise Unauthorized("missing or invalid token")


def parse_client_ip(value: str | None) -> IPAddress | None:
    """Parse a client address, returning None for anything unparseable.

    Accepts the first entry of an ``X-Forwarded-For`` style list.
    """
    if not value:
        return None

    candidate = value.split(",")[0].strip()
    try:
        return ipaddress.ip_address(candidate)
    except ValueError:
        return None


def check_cidr(allow: Iterable[IPNetwork], ip: IPAddress | None) -> None:
    """Enforce the client address allow-list.

    Args:
        allow: Allowed networks; an empty list allows every client
        ip: Client address, if known

    Raises:
        Forbidden: If the address is unknown or outside every network
    """
    networks = list(allow)
    if not networks:
        return

    if ip is None:
        raise Forbidden("client IP unavailable")

    if not any(ip in network for network in networks):
        raise Forbidden("client IP not in allowlist")
