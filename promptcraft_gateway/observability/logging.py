"""
Structured Logging Module

This module provides structured JSON logging for the gateway with request
ID support and credential redaction.

Credential material (API keys, bearer tokens) must never reach a log line,
so a redaction processor masks well-known secret keys before rendering.
"""

import contextvars
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Optional, TextIO

import structlog
from structlog.types import EventDict, Processor


_configured: bool = False

_REDACTED = "***"
_SECRET_KEYS = frozenset(
    {"api_key", "access_token", "authorization", "token", "api-key"}
)


# =============================================================================
# Request ID Context
# =============================================================================

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str) -> None:
    """
    Set the request ID for the current context.

    Args:
        request_id: Identifier the host uses to correlate one completion
    """
    _request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    """Get the current request ID, or None."""
    return _request_id_var.get()


def clear_request_id() -> None:
    """Clear the request ID for the current context."""
    _request_id_var.set(None)


@contextmanager
def request_id_context(request_id: str) -> Generator[None, None, None]:
    """
    Context manager for setting the request ID.

    Example:
        >>> with request_id_context("req-12345"):
        ...     await registry.require_active().complete(request)
    """
    token = _request_id_var.set(request_id)
    try:
        yield
    finally:
        _request_id_var.reset(token)


# =============================================================================
# Custom Processors
# =============================================================================


def add_request_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add the request ID to the log event if set."""
    request_id = get_request_id()
    if request_id is not None:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add an ISO 8601 UTC timestamp to the log event."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_secrets(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask values stored under well-known credential keys."""
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS and event_dict[key]:
            event_dict[key] = _REDACTED
    return event_dict


def rename_level(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename log_level to level for cleaner output."""
    if "log_level" in event_dict:
        event_dict["level"] = event_dict.pop("log_level")
    return event_dict


def rename_logger_name(
    logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename the bound logger_name to logger."""
    if "logger_name" in event_dict:
        event_dict["logger"] = event_dict.pop("logger_name")
    return event_dict


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """
    Configure structlog for the gateway.

    Importing any gateway module configures defaults. A host applying its
    own level calls this with force=True; otherwise repeat calls are no-ops.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream (default: sys.stderr, keeping stdout free for
            host output)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        add_timestamp,
        add_request_id,
        redact_secrets,
        rename_level,
        rename_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_level_to_int(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )

    _configured = True


def reset_logging() -> None:
    """
    Reset logging configuration state.

    WARNING: This should only be used in tests.
    """
    global _configured
    _configured = False


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger bound to a component name.

    Auto-configures with defaults if configure_logging() has not run yet.
    The returned logger is a lazy proxy, so a later
    configure_logging(..., force=True) applies to it.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("provider_registered", provider="groq")
    """
    configure_logging()
    return structlog.get_logger(logger_name=name)


def _level_to_int(level: str) -> int:
    """Map a level name to its logging int, falling back to INFO."""
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
