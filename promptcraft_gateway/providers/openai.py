"""
OpenAI Provider - general commercial adapter

This module implements the OpenAI chat-completions adapter plus two
informational helpers (token and cost estimates) used by status displays.

Design Patterns:
- Ports and Adapters: OpenAIProvider satisfies the LLMProvider protocol
- Composition: HTTP, classification and metrics come from ChatCompletionsClient
"""

import math
from collections.abc import AsyncIterator
from typing import Optional

import httpx

from promptcraft_gateway.core.exceptions import AuthenticationError, ConfigurationError
from promptcraft_gateway.models.descriptors import OPENAI_DEFAULT_MODEL, OpenAIDescriptor
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

OPENAI_MODELS = [
    # GPT-4 variants
    "gpt-4",
    "gpt-4-turbo",
    "gpt-4-turbo-preview",
    "gpt-4-0125-preview",
    "gpt-4-1106-preview",
    # GPT-3.5 variants
    "gpt-3.5-turbo",
    "gpt-3.5-turbo-0125",
    "gpt-3.5-turbo-1106",
]

# USD per 1M tokens (input, output)
OPENAI_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4": (30.0, 60.0),
    "gpt-4-turbo": (10.0, 30.0),
    "gpt-4-turbo-preview": (10.0, 30.0),
    "gpt-3.5-turbo": (0.5, 1.5),
}

CHARS_PER_TOKEN = 4


class OpenAIProvider:
    """
    OpenAI GPT provider adapter.

    Args:
        descriptor: Typed OpenAI configuration.
        transport: Optional httpx transport (httpx.MockTransport in tests).
        health_monitor: Probe runner used by check_health().

    Raises:
        ConfigurationError: The configured default model is not one of
            the available models.
    """

    provider_type = ProviderType.OPENAI

    def __init__(
        self,
        descriptor: OpenAIDescriptor,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        health_monitor: Optional[HealthMonitor] = None,
    ) -> None:
        model = descriptor.model.strip() or OPENAI_DEFAULT_MODEL
        if model not in OPENAI_MODELS:
            raise ConfigurationError(
                f"Invalid OpenAI model: {model}. Available models: {', '.join(OPENAI_MODELS)}",
                descriptor.name,
            )

        self._descriptor = descriptor
        self._default_model = model
        self._api_key = descriptor.api_key.get_secret_value().strip()
        self._http = ChatCompletionsClient(
            ProviderType.OPENAI,
            descriptor.name,
            descriptor.timeout_seconds,
            base_url=descriptor.base_url,
            headers={"Authorization": f"Bearer {self._api_key}"} if self._api_key else None,
            transport=transport,
        )
        self._health_monitor = health_monitor or HealthMonitor()
        self._health = HealthStatus()

    @property
    def descriptor(self) -> OpenAIDescriptor:
        return self._descriptor

    def get_type(self) -> ProviderType:
        return ProviderType.OPENAI

    def get_name(self) -> str:
        return self._descriptor.name

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def get_default_model(self) -> str:
        return self._default_model

    def get_available_models(self) -> list[str]:
        return OPENAI_MODELS.copy()

    # =========================================================================
    # Completion
    # =========================================================================

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Generate a completion through OpenAI.

        Args:
            request: The completion request; an empty model selects the
                configured default model.

        Returns:
            CompletionResponse with the backend-reported model when present.

        Raises:
            AuthenticationError: No API key configured, or the key was rejected.
            RateLimitError: HTTP 429.
            ProviderError: Other classified backend or transport failures.
        """
        if not self._api_key:
            raise AuthenticationError("OpenAI API key not configured", self.get_name())

        model = request.model or self._default_model
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

    # =========================================================================
    # Health and Capabilities
    # =========================================================================

    async def check_health(self) -> HealthStatus:
        self._health = await self._health_monitor.probe(self)
        return self._health

    def get_health(self) -> HealthStatus:
        return self._health.model_copy()

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(
            streaming=True,
            function_calling=True,
            vision="gpt-4" in self._default_model,
        )

    # =========================================================================
    # Estimates
    # =========================================================================

    def estimate_tokens(self, text: str) -> int:
        """Rough token estimate (about four characters per token)."""
        return math.ceil(len(text) / CHARS_PER_TOKEN)

    def estimate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        """
        Estimate the USD cost of a call on the default model.

        Models without a price entry use gpt-4-turbo pricing.
        """
        input_price, output_price = OPENAI_PRICING.get(
            self._default_model, OPENAI_PRICING["gpt-4-turbo"]
        )
        return (prompt_tokens / 1_000_000) * input_price + (
            completion_tokens / 1_000_000
        ) * output_price

    async def aclose(self) -> None:
        await self._http.aclose()
