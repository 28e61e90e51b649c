"""
Error Classification - httpx failures to the gateway taxonomy

Every provider routes backend and transport failures through these two
functions, so no raw httpx exception leaves a provider's public methods.

Status mapping:
    401 -> AuthenticationError
    403 -> AuthorizationError
    404 -> ModelNotFoundError
    429 -> RateLimitError (Retry-After in the message when present)
    400 with code content_filter -> ContentFilteredError
    other 4xx -> InvalidRequestError
    5xx -> ServiceUnavailableError
"""

from typing import Any, Optional

import httpx

from promptcraft_gateway.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ContentFilteredError,
    InvalidRequestError,
    ModelNotFoundError,
    NetworkUnreachableError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    ServiceUnavailableError,
)

CONTENT_FILTER_CODES = frozenset({"content_filter", "content_policy_violation"})


def _error_body(response: httpx.Response) -> dict[str, Any]:
    """Return the backend's ``error`` object, or an empty dict."""
    try:
        data = response.json()
    except ValueError:
        return {}
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        return data["error"]
    return {}


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a Retry-After header given in seconds.

    HTTP-date values are not used by the chat backends and yield None.
    """
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def classify_http_error(
    response: httpx.Response,
    provider: str,
    *,
    not_found_message: Optional[str] = None,
) -> ProviderError:
    """
    Map a non-2xx backend response to a classified error.

    Args:
        response: The failed response.
        provider: Provider display name for the error.
        not_found_message: Message to use for 404 (the Azure provider names
            the missing deployment here).

    Returns:
        The classified error, for the caller to raise.
    """
    status = response.status_code
    body = _error_body(response)
    backend_message = body.get("message") or response.reason_phrase or f"HTTP {status}"
    code = body.get("code") or body.get("type")

    if status == 401:
        return AuthenticationError(
            "Authentication failed. Check your API key or authentication method.",
            provider,
            status_code=status,
        )
    if status == 403:
        return AuthorizationError(
            "Access denied. Check RBAC permissions for your identity.",
            provider,
            status_code=status,
        )
    if status == 404:
        return ModelNotFoundError(
            not_found_message or f"Model not found: {backend_message}",
            provider,
            status_code=status,
        )
    if status == 429:
        raw_retry_after = response.headers.get("retry-after")
        retry_after = parse_retry_after(raw_retry_after)
        if raw_retry_after:
            message = f"Rate limit exceeded. Retry after {raw_retry_after.strip()} seconds."
        else:
            message = "Rate limit exceeded. Please try again later."
        return RateLimitError(message, provider, retry_after=retry_after)
    if status == 400 and code in CONTENT_FILTER_CODES:
        return ContentFilteredError(
            "Content filtered by the provider's content policy",
            provider,
            status_code=status,
        )
    if 400 <= status < 500:
        return InvalidRequestError(
            f"Invalid request: {backend_message}",
            provider,
            status_code=status,
        )
    if status == 503:
        return ServiceUnavailableError(
            "Service temporarily unavailable", provider, status_code=status
        )
    return ServiceUnavailableError(
        f"Server error (HTTP {status})", provider, status_code=status
    )


def classify_transport_error(exc: httpx.HTTPError, provider: str) -> ProviderError:
    """
    Map an httpx transport failure to a classified error.

    Timeouts are kept distinct from connection failures so the caller can
    give different remediation advice.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ProviderTimeoutError("Request timeout", provider)
    if isinstance(exc, httpx.ConnectError):
        return NetworkUnreachableError(
            "Connection refused - check endpoint URL and network", provider
        )
    if isinstance(exc, httpx.HTTPStatusError):
        return classify_http_error(exc.response, provider)
    return NetworkUnreachableError(f"Network error: {exc}", provider)
