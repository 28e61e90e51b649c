"""
Custom exceptions for the PromptCraft provider gateway.

This module provides the closed error taxonomy every provider maps backend
and transport failures into before surfacing them. All exceptions inherit
from GatewayError and carry an ErrorCode, so callers (and the UI boundary)
can branch on the category instead of parsing messages.

Two families exist:
- ProviderError and its subclasses: classified inside a provider.
- RegistryError and its subclasses: raised by the registry/factory, which
  never re-interpret provider errors.
"""

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode(str, Enum):
    """
    Error codes for gateway exceptions.

    These codes provide a consistent way to identify error categories
    across providers and in logging.
    """

    GATEWAY_ERROR = "GATEWAY_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    CONTENT_FILTERED = "CONTENT_FILTERED"
    INVALID_REQUEST = "INVALID_REQUEST"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    CONFIGURATION = "CONFIGURATION"
    AUTH_TOOL_UNAVAILABLE = "AUTH_TOOL_UNAVAILABLE"
    AUTH_SESSION_MISSING = "AUTH_SESSION_MISSING"
    AUTH_ENVIRONMENT_MISMATCH = "AUTH_ENVIRONMENT_MISMATCH"
    EMPTY_RESPONSE = "EMPTY_RESPONSE"
    REGISTRY_ERROR = "REGISTRY_ERROR"
    NO_ACTIVE_PROVIDER = "NO_ACTIVE_PROVIDER"
    UNSUPPORTED_PROVIDER = "UNSUPPORTED_PROVIDER"


# =============================================================================
# Base Exception
# =============================================================================


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code from ErrorCode enum.
        remedy: Optional actionable hint for the user ("run: az login").
    """

    default_code: ErrorCode = ErrorCode.GATEWAY_ERROR
    remedy: str | None = None

    def __init__(
        self,
        message: str,
        error_code: ErrorCode | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code. Defaults to the
                class's default_code.
            **kwargs: Additional attributes to set on the exception.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(GatewayError):
    """
    Exception for LLM provider issues.

    Raised when communication with a backend fails. Only the subclasses
    below are raised by the shipped providers; this class is the catch-all
    parent callers can except on.

    Attributes:
        provider: Display name of the provider (e.g., "Azure OpenAI").
        status_code: HTTP status code from the backend (if applicable).
    """

    default_code = ErrorCode.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        error_code: ErrorCode | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.provider = provider
        self.status_code = status_code

    def __str__(self) -> str:
        return f"{self.provider} - {self.message}"


class AuthenticationError(ProviderError):
    """Invalid or missing static key, or an expired/invalid dynamic token."""

    default_code = ErrorCode.AUTHENTICATION
    remedy = "Check the API key or the configured authentication method."


class AuthorizationError(ProviderError):
    """Credential is valid but lacks permission for the requested resource."""

    default_code = ErrorCode.AUTHORIZATION
    remedy = "Check the role assignments (RBAC) for this identity."


class ModelNotFoundError(ProviderError):
    """The referenced deployment or model does not exist at the backend."""

    default_code = ErrorCode.NOT_FOUND
    remedy = "Check the configured model or deployment name."


class RateLimitError(ProviderError):
    """
    Backend throttling.

    Attributes:
        retry_after: Seconds the backend asked us to wait (if reported).
    """

    default_code = ErrorCode.RATE_LIMITED
    remedy = "Wait before retrying."

    def __init__(
        self,
        message: str,
        provider: str,
        retry_after: float | None = None,
        status_code: int | None = 429,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, provider, status_code=status_code, **kwargs)
        self.retry_after = retry_after


class ContentFilteredError(ProviderError):
    """The backend's content policy rejected the input or output."""

    default_code = ErrorCode.CONTENT_FILTERED
    remedy = "Rephrase the prompt."


class InvalidRequestError(ProviderError):
    """The backend rejected the request shape (any other 4xx)."""

    default_code = ErrorCode.INVALID_REQUEST


class ServiceUnavailableError(ProviderError):
    """Backend-side outage or 5xx response."""

    default_code = ErrorCode.SERVICE_UNAVAILABLE
    remedy = "The service is having problems; try again later."


class ProviderTimeoutError(ProviderError):
    """
    Local timeout elapsed before the backend answered.

    NOTE: Named ProviderTimeoutError to avoid shadowing the builtin
    TimeoutError.
    """

    default_code = ErrorCode.TIMEOUT
    remedy = "Increase the provider timeout or try again."


class NetworkUnreachableError(ProviderError):
    """A connection to the backend could not be established."""

    default_code = ErrorCode.NETWORK_UNREACHABLE
    remedy = "Check the endpoint URL and network connectivity."


class ConfigurationError(ProviderError):
    """
    Required configuration is missing or malformed.

    The only category raised at construction time rather than call time.
    """

    default_code = ErrorCode.CONFIGURATION
    remedy = "Fix the provider settings."


class AuthToolUnavailableError(ProviderError):
    """The Azure CLI is not installed or cannot be executed."""

    default_code = ErrorCode.AUTH_TOOL_UNAVAILABLE
    remedy = "Install the Azure CLI from https://aka.ms/azure-cli"


class AuthSessionMissingError(ProviderError):
    """The Azure CLI is installed but no account is logged in."""

    default_code = ErrorCode.AUTH_SESSION_MISSING
    remedy = "Run: az login"


class AuthEnvironmentMismatchError(ProviderError):
    """Managed identity was requested outside an Azure environment."""

    default_code = ErrorCode.AUTH_ENVIRONMENT_MISMATCH
    remedy = "Managed identity only works inside Azure; use apiKey or azureCli locally."


class EmptyResponseError(ProviderError):
    """The backend returned success but no usable content."""

    default_code = ErrorCode.EMPTY_RESPONSE


# =============================================================================
# Registry Errors
# =============================================================================


class RegistryError(GatewayError):
    """Base exception for registry and factory errors."""

    default_code = ErrorCode.REGISTRY_ERROR


class NoActiveProviderError(RegistryError):
    """No configured provider is available to serve a request."""

    default_code = ErrorCode.NO_ACTIVE_PROVIDER
    remedy = "Configure at least one provider."


class UnsupportedProviderError(RegistryError):
    """
    The provider type is reserved but not implemented.

    Attributes:
        provider_type: The requested type tag.
    """

    default_code = ErrorCode.UNSUPPORTED_PROVIDER

    def __init__(self, message: str, provider_type: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.provider_type = provider_type
