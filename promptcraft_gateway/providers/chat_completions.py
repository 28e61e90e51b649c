"""
Chat Completions Wire Helpers

All three backends speak the OpenAI chat-completions JSON shape. This
module holds the pieces they share: payload construction, response
parsing and a small HTTP client wrapper that classifies failures and
records metrics. Providers compose a ChatCompletionsClient rather than
inheriting behaviour from a base class.

Request shape:
    {"model": ..., "messages": [system, user], "temperature": ..., "max_tokens": ...}

Response fields used:
    choices[0].message.content, choices[0].finish_reason, model, usage
"""

import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from promptcraft_gateway.clients.http import create_http_client
from promptcraft_gateway.core.exceptions import EmptyResponseError, ProviderError
from promptcraft_gateway.models.domain import ProviderType
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.models.responses import CompletionResponse, TokenUsage
from promptcraft_gateway.observability.logging import get_logger
from promptcraft_gateway.observability.metrics import (
    record_provider_error,
    record_provider_latency,
    record_provider_request,
    record_token_usage,
)
from promptcraft_gateway.providers.errors import (
    classify_http_error,
    classify_transport_error,
)

logger = get_logger(__name__)

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1000


def build_chat_payload(
    request: CompletionRequest,
    model: Optional[str] = None,
    **extra: Any,
) -> dict[str, Any]:
    """
    Build a chat-completions request body.

    Args:
        request: The completion request.
        model: Model to send, or None to omit the field (Azure selects the
            model through the deployment in the URL).
        **extra: Additional backend-specific fields.

    Returns:
        JSON-serializable request body.
    """
    payload: dict[str, Any] = {
        "messages": request.to_messages(),
        "temperature": (
            request.temperature if request.temperature is not None else DEFAULT_TEMPERATURE
        ),
        "max_tokens": request.max_tokens if request.max_tokens is not None else DEFAULT_MAX_TOKENS,
    }
    if model:
        payload["model"] = model
    payload.update(extra)
    return payload


def _count(value: Any) -> Optional[int]:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return None
    return value


def _parse_usage(raw: Any) -> Optional[TokenUsage]:
    """Usage is informational; a malformed block is dropped, not fatal."""
    if not isinstance(raw, dict):
        return None
    counts = [
        _count(raw.get(key))
        for key in ("prompt_tokens", "completion_tokens", "total_tokens")
    ]
    if any(count is None for count in counts):
        return None
    prompt, completion, total = counts
    return TokenUsage(
        prompt_tokens=prompt, completion_tokens=completion, total_tokens=total
    )


def _text_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def parse_chat_completion(
    data: Any,
    *,
    fallback_model: str,
    provider: str,
) -> CompletionResponse:
    """
    Convert a chat-completions response body into a CompletionResponse.

    Malformed optional fields (usage, model, finish_reason) are dropped
    rather than failing an otherwise usable completion.

    Args:
        data: Decoded JSON body.
        fallback_model: Model to report when the backend does not name one.
        provider: Provider display name for errors.

    Returns:
        CompletionResponse with non-empty content.

    Raises:
        EmptyResponseError: No choices, an empty message content, or a body
            that cannot form a valid response.
    """
    choices = data.get("choices") if isinstance(data, dict) else None
    first = choices[0] if isinstance(choices, list) and choices else None
    message = first.get("message") if isinstance(first, dict) else None
    content = message.get("content") if isinstance(message, dict) else None

    if not isinstance(content, str) or not content.strip():
        raise EmptyResponseError(f"Empty response from {provider} API", provider)

    try:
        return CompletionResponse(
            content=content,
            model=_text_or_none(data.get("model")) or fallback_model,
            usage=_parse_usage(data.get("usage")),
            finish_reason=_text_or_none(first.get("finish_reason")),
        )
    except ValidationError as e:
        raise EmptyResponseError(f"Malformed response from {provider} API", provider) from e


class ChatCompletionsClient:
    """
    Pooled HTTP client for one provider's chat-completions endpoint.

    The underlying httpx.AsyncClient is created lazily on first use and
    reused until aclose(). Every failure is classified before it leaves
    post(); metrics and logs are recorded per call.

    Args:
        provider_type: Type tag used as the metrics label.
        provider_name: Display name used in error messages.
        timeout_seconds: Per-request timeout.
        base_url: Optional base URL for relative request paths.
        headers: Static headers (e.g. a fixed bearer key).
        transport: Optional httpx transport (httpx.MockTransport in tests).
    """

    def __init__(
        self,
        provider_type: ProviderType,
        provider_name: str,
        timeout_seconds: float,
        base_url: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._provider_type = provider_type
        self._provider_name = provider_name
        self._timeout_seconds = timeout_seconds
        self._base_url = base_url
        self._headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = create_http_client(
                base_url=self._base_url,
                timeout_seconds=self._timeout_seconds,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    async def post(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        fallback_model: str,
        headers: Optional[dict[str, str]] = None,
        not_found_message: Optional[str] = None,
    ) -> CompletionResponse:
        """
        POST a chat-completions payload and parse the result.

        Args:
            url: Absolute URL, or a path relative to base_url.
            payload: Request body from build_chat_payload().
            fallback_model: Model to report when the backend omits it.
            headers: Per-request headers (dynamic auth).
            not_found_message: Message for a 404 response.

        Returns:
            CompletionResponse.

        Raises:
            ProviderError: A classified subclass for every failure.
        """
        label = self._provider_type.value
        start = time.perf_counter()
        logger.debug("completion_started", provider=label, model=payload.get("model", fallback_model))

        try:
            try:
                response = await self._get_client().post(url, json=payload, headers=headers)
            except httpx.HTTPError as e:
                raise classify_transport_error(e, self._provider_name) from e

            if response.is_error:
                raise classify_http_error(
                    response, self._provider_name, not_found_message=not_found_message
                )

            try:
                data = response.json()
            except ValueError as e:
                raise EmptyResponseError(
                    f"Unreadable response from {self._provider_name} API", self._provider_name
                ) from e

            result = parse_chat_completion(
                data, fallback_model=fallback_model, provider=self._provider_name
            )
        except ProviderError as e:
            record_provider_request(label, "error")
            record_provider_error(label, e.error_code.value)
            logger.warning(
                "completion_failed",
                provider=label,
                error_code=e.error_code.value,
                status_code=e.status_code,
                error=e.message,
            )
            raise
        finally:
            record_provider_latency(label, time.perf_counter() - start)

        record_provider_request(label, "success")
        if result.usage is not None:
            record_token_usage(label, result.model, "prompt", result.usage.prompt_tokens)
            record_token_usage(label, result.model, "completion", result.usage.completion_tokens)
        logger.debug(
            "completion_finished",
            provider=label,
            model=result.model,
            finish_reason=result.finish_reason,
        )
        return result

    async def aclose(self) -> None:
        """Close the pooled HTTP client, if one was opened."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
