"""
Models Package - request, response and domain value types.
"""

from promptcraft_gateway.models.descriptors import (
    AzureOpenAIDescriptor,
    GroqDescriptor,
    OpenAIDescriptor,
    ProviderDescriptor,
)
from promptcraft_gateway.models.domain import (
    AuthMethod,
    AuthStatus,
    CachedToken,
    HealthState,
    HealthStatus,
    ProviderCapabilities,
    ProviderType,
)
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.models.responses import CompletionResponse, TokenUsage

__all__ = [
    # Requests / responses
    "CompletionRequest",
    "CompletionResponse",
    "TokenUsage",
    # Domain
    "AuthMethod",
    "AuthStatus",
    "CachedToken",
    "HealthState",
    "HealthStatus",
    "ProviderCapabilities",
    "ProviderType",
    # Descriptors
    "ProviderDescriptor",
    "GroqDescriptor",
    "OpenAIDescriptor",
    "AzureOpenAIDescriptor",
]
