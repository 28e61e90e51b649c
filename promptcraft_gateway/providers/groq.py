"""
Groq Provider - fast-inference adapter

Groq exposes an OpenAI-compatible chat-completions API, so this adapter is
a thin composition of the shared wire helpers with a fixed bearer key.

Design Patterns:
- Ports and Adapters: GroqProvider satisfies the LLMProvider protocol
- Composition: HTTP, classification and metrics come from ChatCompletionsClient
"""

from collections.abc import AsyncIterator
from typing import Optional

import httpx

from promptcraft_gateway.core.exceptions import AuthenticationError
from promptcraft_gateway.models.descriptors import GroqDescriptor
from promptcraft_gateway.models.domain import (
    HealthStatus,
    ProviderCapabilities,
    ProviderType,
)
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.models.responses import CompletionResponse
from promptcraft_gateway.providers.chat_completions import (
    ChatCompletionsClient,
    build_chat_payload,
)
from promptcraft_gateway.providers.health import HealthMonitor

# =============================================================================
# Supported Models
# =============================================================================

GROQ_DEFAULT_MODEL = "llama3-8b-8192"

GROQ_MODELS = [
    "llama3-8b-8192",
    "llama3-70b-8192",
    "mixtral-8x7b-32768",
    "gemma-7b-it",
    "gemma2-9b-it",
]

GROQ_MIN_TIMEOUT_SECONDS = 1.0
GROQ_MAX_TIMEOUT_SECONDS = 20.0
GROQ_DEFAULT_TIMEOUT_SECONDS = 5.0


class GroqProvider:
    """
    Groq provider adapter.

    Args:
        descriptor: Typed Groq configuration.
        transport: Optional httpx transport (httpx.MockTransport in tests).
        health_monitor: Probe runner used by check_health().

    Example:
        >>> provider = GroqProvider(GroqDescriptor(api_key="gsk-..."))
        >>> text = await provider.complete_text(
        ...     CompletionRequest(model="", system="s", user="u")
        ... )
    """

    provider_type = ProviderType.GROQ

    def __init__(
        self,
        descriptor: GroqDescriptor,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        health_monitor: Optional[HealthMonitor] = None,
    ) -> None:
        self._descriptor = descriptor
        self._api_key = descriptor.api_key.get_secret_value().strip()
        self._http = ChatCompletionsClient(
            ProviderType.GROQ,
            descriptor.name,
            descriptor.timeout_seconds,
            base_url=descriptor.base_url,
            headers={"Authorization": f"Bearer {self._api_key}"} if self._api_key else None,
            transport=transport,
        )
        self._health_monitor = health_monitor or HealthMonitor()
        self._health = HealthStatus()

    @property
    def descriptor(self) -> GroqDescriptor:
        return self._descriptor

    def get_type(self) -> ProviderType:
        return ProviderType.GROQ

    def get_name(self) -> str:
        return self._descriptor.name

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def get_default_model(self) -> str:
        return GROQ_DEFAULT_MODEL

    def get_available_models(self) -> list[str]:
        return GROQ_MODELS.copy()

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Generate a completion through Groq.

        Raises:
            AuthenticationError: No API key configured, or the key was rejected.
            ProviderError: Other classified backend or transport failures.
        """
        if not self._api_key:
            raise AuthenticationError("Groq API key not configured", self.get_name())

        model = request.model or GROQ_DEFAULT_MODEL
        return await self._http.post(
            "/chat/completions",
            build_chat_payload(request, model),
            fallback_model=model,
        )

    async def complete_text(self, request: CompletionRequest) -> str:
        response = await self.complete(request)
        return response.content

    async def stream_complete(self, request: CompletionRequest) -> AsyncIterator[str]:
        """Pass-through streaming: yields the full completion once."""
        response = await self.complete(request)
        yield response.content

    async def check_health(self) -> HealthStatus:
        self._health = await self._health_monitor.probe(self)
        return self._health

    def get_health(self) -> HealthStatus:
        return self._health.model_copy()

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(streaming=True)

    async def aclose(self) -> None:
        await self._http.aclose()
