"""
Tests for the Azure OpenAI provider adapter and its auth dispatch.
"""

import httpx
import pytest

from promptcraft_gateway.auth.credentials import CommandResult
from promptcraft_gateway.core.exceptions import (
    AuthenticationError,
    AuthToolUnavailableError,
    ConfigurationError,
    ModelNotFoundError,
)
from promptcraft_gateway.models.descriptors import AzureOpenAIDescriptor
from promptcraft_gateway.models.domain import AuthMethod, ProviderType
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.providers.azure_openai import AzureOpenAIProvider

ENDPOINT = "https://contoso.openai.azure.com"


def _descriptor(**fields) -> AzureOpenAIDescriptor:
    fields.setdefault("endpoint", ENDPOINT)
    fields.setdefault("deployment_name", "gpt4-prod")
    return AzureOpenAIDescriptor(**fields)


def _request() -> CompletionRequest:
    return CompletionRequest(model="", system="s", user="u")


class TestAzureOpenAIConstruction:
    """Construction-time validation and static properties."""

    @pytest.mark.parametrize(
        "fields",
        [
            {"endpoint": ""},
            {"deployment_name": "  "},
            {"endpoint": "contoso.openai.azure.com"},
            {"endpoint": "ftp://contoso"},
        ],
    )
    def test_invalid_configuration(self, fields):
        with pytest.raises(ConfigurationError):
            AzureOpenAIProvider(_descriptor(**fields))

    def test_models_are_the_deployment(self):
        provider = AzureOpenAIProvider(_descriptor(api_key="k"))

        assert provider.get_type() is ProviderType.AZURE_OPENAI
        assert provider.get_default_model() == "gpt4-prod"
        assert provider.get_available_models() == ["gpt4-prod"]

    def test_url_strips_trailing_slashes(self):
        provider = AzureOpenAIProvider(_descriptor(endpoint=ENDPOINT + "//", api_key="k"))

        assert provider.completions_url == (
            f"{ENDPOINT}/openai/deployments/gpt4-prod/chat/completions?api-version=2024-02-01"
        )

    @pytest.mark.parametrize(
        "method, api_key, configured",
        [
            (AuthMethod.API_KEY, "k", True),
            (AuthMethod.API_KEY, "", False),
            (AuthMethod.AZURE_CLI, "", True),
            (AuthMethod.MANAGED_IDENTITY, "", True),
        ],
    )
    def test_is_configured(self, method, api_key, configured):
        provider = AzureOpenAIProvider(_descriptor(auth_method=method, api_key=api_key))

        assert provider.is_configured() is configured

    def test_capabilities(self):
        caps = AzureOpenAIProvider(_descriptor(api_key="k")).get_capabilities()

        assert (caps.streaming, caps.function_calling, caps.vision) == (True, True, True)


class TestAzureOpenAIComplete:
    """Tests for complete() across auth methods."""

    @pytest.mark.asyncio
    async def test_api_key_header_and_no_model_field(self, make_backend, completion_body):
        backend = make_backend(lambda request: httpx.Response(200, json=completion_body(model=None)))
        provider = AzureOpenAIProvider(_descriptor(api_key="azure-key"), transport=backend.transport)

        response = await provider.complete(_request())

        sent = backend.requests[0]
        assert sent.headers["api-key"] == "azure-key"
        assert "Authorization" not in sent.headers
        assert sent.url.path == "/openai/deployments/gpt4-prod/chat/completions"
        assert sent.url.params["api-version"] == "2024-02-01"
        assert "model" not in backend.last_json
        assert response.model == "gpt4-prod"

    @pytest.mark.asyncio
    async def test_azure_cli_bearer(self, backend, cli_runner, clock):
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.AZURE_CLI),
            transport=backend.transport,
            command_runner=cli_runner,
            clock=clock,
        )

        await provider.complete(_request())
        await provider.complete(_request())

        assert [r.headers["Authorization"] for r in backend.requests] == ["Bearer cli-token"] * 2
        assert len(cli_runner.calls) == 3

    @pytest.mark.asyncio
    async def test_azure_cli_missing(self, backend, make_cli_runner):
        runner = make_cli_runner({"version": FileNotFoundError("az")})
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.AZURE_CLI),
            transport=backend.transport,
            command_runner=runner,
        )

        with pytest.raises(AuthToolUnavailableError):
            await provider.complete(_request())

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_deployment_not_found_message(self, make_backend):
        backend = make_backend(lambda request: httpx.Response(404))
        provider = AzureOpenAIProvider(_descriptor(api_key="k"), transport=backend.transport)

        with pytest.raises(ModelNotFoundError) as exc_info:
            await provider.complete(_request())

        assert "gpt4-prod" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_rejected_bearer_token_is_dropped(self, make_backend, cli_runner, clock):
        backend = make_backend(lambda request: httpx.Response(401))
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.AZURE_CLI),
            transport=backend.transport,
            command_runner=cli_runner,
            clock=clock,
        )

        with pytest.raises(AuthenticationError):
            await provider.complete(_request())
        with pytest.raises(AuthenticationError):
            await provider.complete(_request())

        token_calls = [c for c in cli_runner.calls if "get-access-token" in c]
        assert len(token_calls) == 2

    @pytest.mark.asyncio
    async def test_clear_token_cache_forces_refetch(self, backend, cli_runner, clock):
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.AZURE_CLI),
            transport=backend.transport,
            command_runner=cli_runner,
            clock=clock,
        )

        await provider.complete(_request())
        provider.clear_token_cache()
        await provider.complete(_request())

        assert len(cli_runner.calls) == 6

    @pytest.mark.asyncio
    async def test_managed_identity_bearer(self, clock):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.host == "169.254.169.254":
                return httpx.Response(200, json={"access_token": "mi-token", "expires_in": "3599"})
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.MANAGED_IDENTITY, managed_identity_client_id="cid"),
            transport=httpx.MockTransport(handler),
            clock=clock,
        )

        response = await provider.complete(_request())

        imds, completion = seen
        assert imds.headers["Metadata"] == "true"
        assert imds.url.params["client_id"] == "cid"
        assert completion.headers["Authorization"] == "Bearer mi-token"
        assert response.content == "ok"

    @pytest.mark.asyncio
    async def test_token_fetch_leaves_shared_transport_open(self, clock):
        transport = ClosableTransport()
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.MANAGED_IDENTITY),
            transport=transport,
            clock=clock,
        )

        response = await provider.complete(_request())
        status = await provider.get_auth_status()

        assert response.content == "ok"
        assert status.is_authenticated is True
        assert transport.closed is False

        await provider.aclose()
        assert transport.closed is True


class ClosableTransport(httpx.AsyncBaseTransport):
    """Metadata and backend in one transport that refuses use after aclose()."""

    def __init__(self) -> None:
        self.closed = False

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if self.closed:
            raise RuntimeError("transport used after aclose()")
        if request.url.host == "169.254.169.254":
            if request.url.path == "/metadata/instance":
                return httpx.Response(200, json={"compute": {}})
            return httpx.Response(200, json={"access_token": "mi-token", "expires_in": 3600})
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    async def aclose(self) -> None:
        self.closed = True


class TestAzureOpenAIAuthStatus:
    """Tests for get_auth_status()."""

    @pytest.mark.asyncio
    async def test_api_key(self):
        status = await AzureOpenAIProvider(_descriptor(api_key="k")).get_auth_status()

        assert status.method is AuthMethod.API_KEY
        assert status.is_authenticated is True
        assert status.message == "API key configured"

    @pytest.mark.asyncio
    async def test_api_key_missing(self):
        status = await AzureOpenAIProvider(_descriptor()).get_auth_status()

        assert status.is_authenticated is False
        assert status.message == "API key not set"

    @pytest.mark.asyncio
    async def test_cli_not_installed(self, make_cli_runner):
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.AZURE_CLI),
            command_runner=make_cli_runner({"version": FileNotFoundError("az")}),
        )

        status = await provider.get_auth_status()

        assert status.is_authenticated is False
        assert status.message == "Azure CLI not installed"

    @pytest.mark.asyncio
    async def test_cli_not_logged_in(self, make_cli_runner):
        runner = make_cli_runner(
            {
                "version": CommandResult(0, "azure-cli 2.60.0"),
                "show": CommandResult(1, "", "Please run 'az login'"),
            }
        )
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.AZURE_CLI), command_runner=runner
        )

        status = await provider.get_auth_status()

        assert status.is_authenticated is False
        assert "az login" in status.message

    @pytest.mark.asyncio
    async def test_cli_logged_in(self, cli_runner):
        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.AZURE_CLI), command_runner=cli_runner
        )

        status = await provider.get_auth_status()

        assert status.is_authenticated is True
        assert status.message == "Logged in via Azure CLI"

    @pytest.mark.asyncio
    async def test_managed_identity_outside_azure(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        provider = AzureOpenAIProvider(
            _descriptor(auth_method=AuthMethod.MANAGED_IDENTITY),
            transport=httpx.MockTransport(handler),
        )

        status = await provider.get_auth_status()

        assert status.is_authenticated is False
        assert status.message == "Not in Azure environment"
