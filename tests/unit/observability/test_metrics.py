"""
Tests for Prometheus metrics helpers.
"""

import httpx
import pytest
from prometheus_client import REGISTRY

from promptcraft_gateway.models.descriptors import GroqDescriptor
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.observability.metrics import (
    generate_metrics,
    record_provider_error,
    record_provider_request,
    record_token_fetch,
)
from promptcraft_gateway.providers.groq import GroqProvider


def _sample(name: str, **labels) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricHelpers:
    """Helper functions increment the labelled series."""

    def test_record_provider_request(self):
        before = _sample(
            "promptcraft_provider_requests_total", provider="groq", outcome="success"
        )

        record_provider_request("groq", "success")

        assert _sample(
            "promptcraft_provider_requests_total", provider="groq", outcome="success"
        ) == before + 1

    def test_record_token_fetch(self):
        before = _sample(
            "promptcraft_credential_token_fetches_total", auth_method="azureCli", result="hit"
        )

        record_token_fetch("azureCli", "hit")

        assert _sample(
            "promptcraft_credential_token_fetches_total", auth_method="azureCli", result="hit"
        ) == before + 1

    def test_generate_metrics_exposition(self):
        record_provider_error("openai", "TIMEOUT")

        text = generate_metrics()

        assert "promptcraft_provider_errors_total" in text
        assert 'error_code="TIMEOUT"' in text


class TestProviderMetrics:
    """Providers record outcomes per call."""

    @pytest.mark.asyncio
    async def test_failure_counted_by_error_code(self, make_backend):
        backend = make_backend(lambda request: httpx.Response(401))
        provider = GroqProvider(GroqDescriptor(api_key="bad"), transport=backend.transport)
        before = _sample(
            "promptcraft_provider_errors_total", provider="groq", error_code="AUTHENTICATION"
        )

        with pytest.raises(Exception):
            await provider.complete(CompletionRequest(model="", system="s", user="u"))

        assert _sample(
            "promptcraft_provider_errors_total", provider="groq", error_code="AUTHENTICATION"
        ) == before + 1

    @pytest.mark.asyncio
    async def test_token_usage_counted(self, backend):
        provider = GroqProvider(GroqDescriptor(api_key="gsk"), transport=backend.transport)
        labels = {"provider": "groq", "model": "llama3-8b-8192", "type": "prompt"}
        before = _sample("promptcraft_tokens_total", **labels)

        await provider.complete(CompletionRequest(model="", system="s", user="u"))

        assert _sample("promptcraft_tokens_total", **labels) == before + 12
