"""
Azure OpenAI Provider - enterprise adapter with three auth methods

The backend is addressed per deployment:

    {endpoint}/openai/deployments/{deployment}/chat/completions?api-version={v}

Authentication is dispatched per request through a CredentialResolver
(static api-key header, Azure CLI bearer token or managed identity bearer
token). Only the bearer token is cached, inside the resolver.

Design Patterns:
- Ports and Adapters: AzureOpenAIProvider satisfies the LLMProvider protocol
- Strategy: the auth method selects the resolver's token source
"""

import time
from collections.abc import AsyncIterator
from typing import Callable, Optional
from urllib.parse import quote, urlparse

import httpx

from promptcraft_gateway.auth.credentials import (
    CommandRunner,
    CredentialResolver,
    is_azure_environment,
    is_cli_authenticated,
    is_cli_available,
)
from promptcraft_gateway.core.exceptions import AuthenticationError, ConfigurationError
from promptcraft_gateway.models.descriptors import AzureOpenAIDescriptor
from promptcraft_gateway.models.domain import (
    AuthMethod,
    AuthStatus,
    HealthStatus,
    ProviderCapabilities,
    ProviderType,
)
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.models.responses import CompletionResponse
from promptcraft_gateway.observability.logging import get_logger
from promptcraft_gateway.providers.chat_completions import (
    ChatCompletionsClient,
    build_chat_payload,
)
from promptcraft_gateway.providers.health import HealthMonitor

logger = get_logger(__name__)


def _validate_endpoint(endpoint: str, provider: str) -> str:
    """Return the endpoint without trailing slashes, or raise ConfigurationError."""
    parsed = urlparse(endpoint)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(
            f"Invalid Azure OpenAI endpoint URL: {endpoint}", provider
        )
    return endpoint.rstrip("/")


class AzureOpenAIProvider:
    """
    Azure OpenAI provider adapter.

    Args:
        descriptor: Typed Azure OpenAI configuration.
        transport: Optional httpx transport (backend and metadata calls).
        credential_resolver: Pre-built resolver; built from the descriptor
            when omitted.
        command_runner: Subprocess runner for the azureCli method.
        clock: Epoch-seconds clock for token expiry.
        health_monitor: Probe runner used by check_health().

    Raises:
        ConfigurationError: Empty endpoint, empty deployment, or an
            endpoint that is not an absolute http(s) URL.

    Example:
        >>> provider = AzureOpenAIProvider(AzureOpenAIDescriptor(
        ...     endpoint="https://res.openai.azure.com",
        ...     deployment_name="gpt4",
        ...     auth_method=AuthMethod.AZURE_CLI,
        ... ))
        >>> provider.get_default_model()
        'gpt4'
    """

    provider_type = ProviderType.AZURE_OPENAI

    def __init__(
        self,
        descriptor: AzureOpenAIDescriptor,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        credential_resolver: Optional[CredentialResolver] = None,
        command_runner: Optional[CommandRunner] = None,
        clock: Callable[[], float] = time.time,
        health_monitor: Optional[HealthMonitor] = None,
    ) -> None:
        name = descriptor.name
        if not descriptor.endpoint.strip():
            raise ConfigurationError("Azure OpenAI endpoint is required", name)
        if not descriptor.deployment_name.strip():
            raise ConfigurationError("Azure OpenAI deployment name is required", name)

        self._descriptor = descriptor
        self._endpoint = _validate_endpoint(descriptor.endpoint.strip(), name)
        self._deployment = descriptor.deployment_name.strip()
        self._api_key = descriptor.api_key.get_secret_value().strip()
        self._transport = transport
        self._command_runner = command_runner
        self._resolver = credential_resolver or CredentialResolver(
            descriptor.auth_method,
            api_key=self._api_key,
            managed_identity_client_id=descriptor.managed_identity_client_id,
            timeout_seconds=descriptor.timeout_seconds,
            clock=clock,
            command_runner=command_runner,
            transport=transport,
            provider_name=name,
        )
        self._http = ChatCompletionsClient(
            ProviderType.AZURE_OPENAI,
            name,
            descriptor.timeout_seconds,
            transport=transport,
        )
        self._health_monitor = health_monitor or HealthMonitor()
        self._health = HealthStatus()

    @property
    def descriptor(self) -> AzureOpenAIDescriptor:
        return self._descriptor

    @property
    def auth_method(self) -> AuthMethod:
        return self._descriptor.auth_method

    @property
    def completions_url(self) -> str:
        """Fully qualified chat-completions URL for the deployment."""
        return (
            f"{self._endpoint}/openai/deployments/{quote(self._deployment, safe='')}"
            f"/chat/completions?api-version={quote(self._descriptor.api_version, safe='')}"
        )

    def get_type(self) -> ProviderType:
        return ProviderType.AZURE_OPENAI

    def get_name(self) -> str:
        return self._descriptor.name

    def is_configured(self) -> bool:
        """
        Static configuration check.

        azureCli and managedIdentity report True optimistically; their
        credentials are validated at call time or by check_health().
        """
        if self.auth_method is AuthMethod.API_KEY:
            return bool(self._api_key)
        return True

    def get_default_model(self) -> str:
        return self._deployment

    def get_available_models(self) -> list[str]:
        return [self._deployment]

    # =========================================================================
    # Completion
    # =========================================================================

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Generate a completion through the configured deployment.

        The model field is not sent; the deployment in the URL selects it.

        Raises:
            AuthToolUnavailableError, AuthSessionMissingError,
            AuthEnvironmentMismatchError: Credential acquisition failures.
            ModelNotFoundError: The deployment does not exist.
            ProviderError: Other classified backend or transport failures.
        """
        headers = await self._resolver.get_auth_headers()
        try:
            return await self._http.post(
                self.completions_url,
                build_chat_payload(request),
                fallback_model=request.model or self._deployment,
                headers=headers,
                not_found_message=(
                    f"Deployment '{self._deployment}' not found. Check your deployment name."
                ),
            )
        except AuthenticationError:
            if self.auth_method is not AuthMethod.API_KEY:
                # A rejected bearer token is never reused.
                self._resolver.clear_cache()
            raise

    async def complete_text(self, request: CompletionRequest) -> str:
        response = await self.complete(request)
        return response.content

    async def stream_complete(self, request: CompletionRequest) -> AsyncIterator[str]:
        """Pass-through streaming: yields the full completion once."""
        response = await self.complete(request)
        yield response.content

    # =========================================================================
    # Health, Capabilities and Auth Status
    # =========================================================================

    async def check_health(self) -> HealthStatus:
        self._health = await self._health_monitor.probe(self)
        return self._health

    def get_health(self) -> HealthStatus:
        return self._health.model_copy()

    def get_capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(streaming=True, function_calling=True, vision=True)

    async def get_auth_status(self) -> AuthStatus:
        """Describe whether the configured auth method currently looks usable."""
        method = self.auth_method

        if method is AuthMethod.API_KEY:
            has_key = bool(self._api_key)
            return AuthStatus(
                method=method,
                is_authenticated=has_key,
                message="API key configured" if has_key else "API key not set",
            )

        if method is AuthMethod.AZURE_CLI:
            if not await is_cli_available(self._command_runner):
                return AuthStatus(
                    method=method, is_authenticated=False, message="Azure CLI not installed"
                )
            logged_in = await is_cli_authenticated(self._command_runner)
            return AuthStatus(
                method=method,
                is_authenticated=logged_in,
                message=(
                    "Logged in via Azure CLI"
                    if logged_in
                    else "Not logged in to Azure CLI (run: az login)"
                ),
            )

        in_azure = await is_azure_environment(self._transport)
        return AuthStatus(
            method=method,
            is_authenticated=in_azure,
            message=(
                "Running in Azure with Managed Identity"
                if in_azure
                else "Not in Azure environment"
            ),
        )

    def clear_token_cache(self) -> None:
        """Force the next request to fetch a fresh bearer token."""
        self._resolver.clear_cache()
        logger.debug("token_cache_cleared", provider=self.get_type().value)

    async def aclose(self) -> None:
        await self._http.aclose()
