"""
Core module for the PromptCraft gateway.

This module contains configuration and the error taxonomy.
"""

from promptcraft_gateway.core.config import (
    AzureOpenAISettings,
    GatewaySettings,
    GroqSettings,
    OpenAISettings,
    get_settings,
)
from promptcraft_gateway.core.exceptions import (
    AuthEnvironmentMismatchError,
    AuthenticationError,
    AuthorizationError,
    AuthSessionMissingError,
    AuthToolUnavailableError,
    ConfigurationError,
    ContentFilteredError,
    EmptyResponseError,
    ErrorCode,
    GatewayError,
    InvalidRequestError,
    ModelNotFoundError,
    NetworkUnreachableError,
    NoActiveProviderError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    RegistryError,
    ServiceUnavailableError,
    UnsupportedProviderError,
)

__all__ = [
    # Config
    "GatewaySettings",
    "GroqSettings",
    "OpenAISettings",
    "AzureOpenAISettings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "GatewayError",
    "ProviderError",
    "AuthenticationError",
    "AuthorizationError",
    "ModelNotFoundError",
    "RateLimitError",
    "ContentFilteredError",
    "InvalidRequestError",
    "ServiceUnavailableError",
    "ProviderTimeoutError",
    "NetworkUnreachableError",
    "ConfigurationError",
    "AuthToolUnavailableError",
    "AuthSessionMissingError",
    "AuthEnvironmentMismatchError",
    "EmptyResponseError",
    "RegistryError",
    "NoActiveProviderError",
    "UnsupportedProviderError",
]
