"""
Provider Interface - the uniform contract every backend satisfies

LLMProvider is a structural Protocol: the Groq, OpenAI and Azure OpenAI
providers are independent classes that implement it, and the registry,
factory and health monitor depend only on this contract. Shared behaviour
lives in composed helpers (chat_completions, errors, health) instead of a
base class.

Design Pattern:
- Ports and Adapters (Hexagonal Architecture)
- LLMProvider serves as the "port"
- GroqProvider, OpenAIProvider and AzureOpenAIProvider serve as "adapters"

Error contract:
- complete(), complete_text() and stream_complete() raise only
  ProviderError subclasses from core.exceptions.
- check_health() never raises; the failure is recorded in HealthStatus.
"""

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from promptcraft_gateway.models.descriptors import ProviderDescriptor
from promptcraft_gateway.models.domain import (
    HealthStatus,
    ProviderCapabilities,
    ProviderType,
)
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.models.responses import CompletionResponse


@runtime_checkable
class LLMProvider(Protocol):
    """
    Contract for LLM provider adapters.

    Methods:
        get_type: Stable type tag
        get_name: Display name
        is_configured: Whether enough configuration exists to attempt a call
        get_default_model / get_available_models: Model discovery
        complete: One completion, normalized response or classified error
        complete_text: Same as complete but returns only the text
        stream_complete: Pass-through streaming (yields the full text once)
        check_health: Probe the backend and record HealthStatus; never raises
        get_health: Copy of the most recent HealthStatus
        get_capabilities: Informational capability flags
        aclose: Release pooled HTTP connections

    Example:
        >>> provider = registry.get_active()
        >>> if provider is not None:
        ...     response = await provider.complete(
        ...         CompletionRequest(model="", system="s", user="u")
        ...     )
    """

    @property
    def descriptor(self) -> ProviderDescriptor:
        """The provider's typed configuration."""
        ...

    def get_type(self) -> ProviderType:
        """Stable enumeration tag. Pure."""
        ...

    def get_name(self) -> str:
        """Display name used in messages and errors."""
        ...

    def is_configured(self) -> bool:
        """
        True only if credentials/endpoint sufficient to attempt a call exist.

        This is a static check of configuration presence. Dynamic
        credentials (Azure CLI, managed identity) are only validated at
        call time or by check_health().
        """
        ...

    def get_default_model(self) -> str:
        ...

    def get_available_models(self) -> list[str]:
        ...

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Generate a completion.

        The response model is the backend-reported model if present, else
        the request's model, else get_default_model().

        Raises:
            ProviderError: A classified subclass for every failure.
        """
        ...

    async def complete_text(self, request: CompletionRequest) -> str:
        ...

    def stream_complete(self, request: CompletionRequest) -> AsyncIterator[str]:
        ...

    async def check_health(self) -> HealthStatus:
        """Probe the backend and record the result. Never raises."""
        ...

    def get_health(self) -> HealthStatus:
        ...

    def get_capabilities(self) -> ProviderCapabilities:
        ...

    async def aclose(self) -> None:
        ...
