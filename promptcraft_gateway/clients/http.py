"""
HTTP Client Module - client factory for backend calls

This module builds the httpx.AsyncClient each provider uses for its
backend, with connection pooling and a single timeout applied to connect,
read, write and pool acquisition.

Pattern: Factory pattern for creating configured HTTP clients
"""

from typing import Optional

import httpx


# =============================================================================
# Default Configuration Constants
# =============================================================================


DEFAULT_TIMEOUT_SECONDS: float = 30.0
"""Default timeout for HTTP requests in seconds."""

MIN_TIMEOUT_SECONDS: float = 1.0
MAX_TIMEOUT_SECONDS: float = 60.0

DEFAULT_MAX_CONNECTIONS: int = 20
"""Maximum number of connections in one provider's pool."""

DEFAULT_MAX_KEEPALIVE: int = 5
"""Maximum number of keepalive connections."""

USER_AGENT = "promptcraft-gateway/0.1"


def clamp_timeout(
    value: Optional[float],
    default: float = DEFAULT_TIMEOUT_SECONDS,
    minimum: float = MIN_TIMEOUT_SECONDS,
    maximum: float = MAX_TIMEOUT_SECONDS,
) -> float:
    """
    Clamp a raw timeout into [minimum, maximum].

    Args:
        value: Raw timeout in seconds, or None for the default.
        default: Used when value is None or not positive.
        minimum: Lower bound.
        maximum: Upper bound.

    Returns:
        The clamped timeout in seconds.

    Example:
        >>> clamp_timeout(0.2)
        1.0
        >>> clamp_timeout(None, default=5.0)
        5.0
        >>> clamp_timeout(600)
        60.0
    """
    raw = value if value is not None and value > 0 else default
    return max(minimum, min(maximum, float(raw)))


def create_http_client(
    base_url: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
    headers: Optional[dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    max_connections: Optional[int] = None,
    max_keepalive: Optional[int] = None,
) -> httpx.AsyncClient:
    """
    Create a configured HTTP client with connection pooling and timeouts.

    Args:
        base_url: Base URL for all requests
        timeout_seconds: Request timeout in seconds (default: 30.0)
        headers: Additional headers to include in all requests
        transport: Optional transport override (httpx.MockTransport in tests)
        max_connections: Maximum connections in pool (default: 20)
        max_keepalive: Maximum keepalive connections (default: 5)

    Returns:
        httpx.AsyncClient: Configured async HTTP client
    """
    timeout = timeout_seconds if timeout_seconds is not None else DEFAULT_TIMEOUT_SECONDS

    default_headers = {
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if headers:
        default_headers.update(headers)

    if transport is None:
        transport = httpx.AsyncHTTPTransport(
            limits=httpx.Limits(
                max_connections=max_connections or DEFAULT_MAX_CONNECTIONS,
                max_keepalive_connections=max_keepalive or DEFAULT_MAX_KEEPALIVE,
            ),
        )

    return httpx.AsyncClient(
        base_url=base_url or "",
        timeout=httpx.Timeout(timeout),
        headers=default_headers,
        transport=transport,
    )
