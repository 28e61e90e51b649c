"""
Clients Package - HTTP client construction for backend calls.
"""

from promptcraft_gateway.clients.http import (
    DEFAULT_TIMEOUT_SECONDS,
    MAX_TIMEOUT_SECONDS,
    MIN_TIMEOUT_SECONDS,
    clamp_timeout,
    create_http_client,
)

__all__ = [
    "DEFAULT_TIMEOUT_SECONDS",
    "MIN_TIMEOUT_SECONDS",
    "MAX_TIMEOUT_SECONDS",
    "clamp_timeout",
    "create_http_client",
]
