"""
Observability Package

This package provides:
- Structured JSON logging (structlog)
- Prometheus metrics for provider traffic
"""

from promptcraft_gateway.observability.logging import (
    clear_request_id,
    configure_logging,
    get_logger,
    get_request_id,
    request_id_context,
    set_request_id,
)
from promptcraft_gateway.observability.metrics import (
    generate_metrics,
    record_provider_error,
    record_provider_latency,
    record_provider_request,
    record_token_fetch,
    record_token_usage,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "set_request_id",
    "get_request_id",
    "clear_request_id",
    "request_id_context",
    # Metrics
    "generate_metrics",
    "record_provider_request",
    "record_provider_error",
    "record_provider_latency",
    "record_token_usage",
    "record_token_fetch",
]
