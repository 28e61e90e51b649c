"""
Prometheus Metrics Module

This module provides Prometheus metrics for provider traffic: request
counts by outcome, error counts by category, latency, token usage and
credential token fetches.

The host application decides whether and how to expose them;
generate_metrics() renders the default registry in exposition format.
"""

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

# =============================================================================
# Provider Metrics
# =============================================================================

PROVIDER_REQUESTS_TOTAL = Counter(
    name="promptcraft_provider_requests_total",
    documentation="Total completion requests by provider and outcome",
    labelnames=["provider", "outcome"],
)

PROVIDER_ERRORS_TOTAL = Counter(
    name="promptcraft_provider_errors_total",
    documentation="Classified provider errors by category",
    labelnames=["provider", "error_code"],
)

PROVIDER_LATENCY_SECONDS = Histogram(
    name="promptcraft_provider_latency_seconds",
    documentation="Completion round-trip latency in seconds",
    labelnames=["provider"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0),
)

TOKEN_USAGE_TOTAL = Counter(
    name="promptcraft_tokens_total",
    documentation="Total number of tokens used",
    labelnames=["provider", "model", "type"],
)

TOKEN_FETCHES_TOTAL = Counter(
    name="promptcraft_credential_token_fetches_total",
    documentation="Bearer token fetches by auth method and cache result",
    labelnames=["auth_method", "result"],
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_provider_request(provider: str, outcome: str) -> None:
    """
    Record a completion request.

    Args:
        provider: Provider type tag (groq, openai, azure-openai)
        outcome: "success" or "error"
    """
    PROVIDER_REQUESTS_TOTAL.labels(provider=provider, outcome=outcome).inc()


def record_provider_error(provider: str, error_code: str) -> None:
    """
    Record a classified provider error.

    Args:
        provider: Provider type tag
        error_code: ErrorCode value (AUTHENTICATION, TIMEOUT, ...)
    """
    PROVIDER_ERRORS_TOTAL.labels(provider=provider, error_code=error_code).inc()


def record_provider_latency(provider: str, seconds: float) -> None:
    """Record a completion round-trip latency."""
    PROVIDER_LATENCY_SECONDS.labels(provider=provider).observe(seconds)


def record_token_usage(
    provider: str,
    model: str,
    token_type: str,
    count: int,
) -> None:
    """
    Record token usage for a completion.

    Args:
        provider: Provider type tag
        model: Resolved model name
        token_type: "prompt" or "completion"
        count: Number of tokens
    """
    TOKEN_USAGE_TOTAL.labels(provider=provider, model=model, type=token_type).inc(count)


def record_token_fetch(auth_method: str, result: str) -> None:
    """
    Record a credential token lookup.

    Args:
        auth_method: azureCli or managedIdentity
        result: "hit" (served from cache), "fetched" or "failed"
    """
    TOKEN_FETCHES_TOTAL.labels(auth_method=auth_method, result=result).inc()


def generate_metrics() -> str:
    """
    Generate Prometheus metrics text format.

    Returns:
        Prometheus exposition format text
    """
    return generate_latest(REGISTRY).decode("utf-8")
