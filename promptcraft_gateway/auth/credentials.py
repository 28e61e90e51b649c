"""
Credential Resolver - static key, Azure CLI and managed identity

Turns an Azure OpenAI authentication method into request headers:

    apiKey          -> {"api-key": <key>}
    azureCli        -> {"Authorization": "Bearer <token>"} (token from `az`)
    managedIdentity -> {"Authorization": "Bearer <token>"} (token from IMDS)

Bearer tokens are cached in memory as a single immutable CachedToken and
reused while the clock is strictly before their expiry. Concurrent fetches
on an empty cache may both run; the last writer wins. The static key is
never cached or refreshed.

The subprocess runner, HTTP transport and clock are injectable so tests
never touch a real CLI or metadata endpoint.
"""

import asyncio
import shutil
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol, Sequence

import httpx

from promptcraft_gateway.clients.http import create_http_client
from promptcraft_gateway.core.exceptions import (
    AuthenticationError,
    AuthEnvironmentMismatchError,
    AuthorizationError,
    AuthSessionMissingError,
    AuthToolUnavailableError,
    ProviderError,
    ProviderTimeoutError,
)
from promptcraft_gateway.models.domain import AuthMethod, CachedToken
from promptcraft_gateway.observability.logging import get_logger
from promptcraft_gateway.observability.metrics import record_token_fetch

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

COGNITIVE_SERVICES_RESOURCE = "https://cognitiveservices.azure.com"

IMDS_TOKEN_URL = "http://169.254.169.254/metadata/identity/oauth2/token"
IMDS_TOKEN_API_VERSION = "2018-02-01"
IMDS_INSTANCE_URL = "http://169.254.169.254/metadata/instance"
IMDS_INSTANCE_API_VERSION = "2021-02-01"
IMDS_MAX_TIMEOUT_SECONDS = 5.0
IMDS_PROBE_TIMEOUT_SECONDS = 2.0

DEFAULT_TOKEN_LIFETIME_SECONDS = 3600.0
CLI_PROBE_TIMEOUT_SECONDS = 10.0
DEFAULT_PROVIDER_NAME = "Azure OpenAI"

AZ_VERSION_ARGS = ("az", "--version")
AZ_ACCOUNT_ARGS = ("az", "account", "show")
AZ_TOKEN_ARGS = (
    "az",
    "account",
    "get-access-token",
    "--resource",
    COGNITIVE_SERVICES_RESOURCE,
    "--query",
    "[accessToken, expires_on]",
    "-o",
    "tsv",
)


# =============================================================================
# Command Runner
# =============================================================================


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    returncode: int
    stdout: str
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and bool(self.stdout.strip())


CommandRunner = Callable[[Sequence[str], float], Awaitable[CommandResult]]
"""async (argv, timeout_seconds) -> CommandResult.

Raises FileNotFoundError when the executable is missing and
asyncio.TimeoutError when the timeout elapses.
"""


async def run_command(args: Sequence[str], timeout_seconds: float) -> CommandResult:
    """Run a command as an asyncio subprocess and capture its output."""
    executable = shutil.which(args[0])
    if executable is None:
        raise FileNotFoundError(args[0])

    process = await asyncio.create_subprocess_exec(
        executable,
        *args[1:],
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout_seconds)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise

    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


# =============================================================================
# Token Sources
# =============================================================================


class TokenSource(Protocol):
    """Fetches a fresh bearer token."""

    async def fetch(self) -> CachedToken:
        ...


def _parse_cli_token(stdout: str, now: float) -> Optional[CachedToken]:
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines:
        return None

    expires_on = now + DEFAULT_TOKEN_LIFETIME_SECONDS
    if len(lines) > 1:
        try:
            expires_on = float(lines[1])
        except ValueError:
            pass
    return CachedToken(access_token=lines[0], expires_on=expires_on)


class AzureCliTokenSource:
    """
    Acquires tokens from a locally logged-in Azure CLI.

    Runs `az --version`, then `az account show`, then
    `az account get-access-token`; each step has its own failure category.
    """

    def __init__(
        self,
        timeout_seconds: float,
        runner: Optional[CommandRunner] = None,
        clock: Callable[[], float] = time.time,
        provider_name: str = DEFAULT_PROVIDER_NAME,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._runner = runner or run_command
        self._clock = clock
        self._provider_name = provider_name

    async def _run(self, args: Sequence[str]) -> CommandResult:
        try:
            return await self._runner(args, self._timeout_seconds)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Azure CLI command timed out after {self._timeout_seconds:g}s: {' '.join(args[:3])}",
                self._provider_name,
            ) from e
        except OSError as e:
            raise AuthToolUnavailableError(
                "Azure CLI is not installed. Install it from https://aka.ms/azure-cli",
                self._provider_name,
            ) from e

    async def fetch(self) -> CachedToken:
        result = await self._run(AZ_VERSION_ARGS)
        if not result.ok:
            raise AuthToolUnavailableError(
                "Azure CLI is not installed. Install it from https://aka.ms/azure-cli",
                self._provider_name,
            )

        result = await self._run(AZ_ACCOUNT_ARGS)
        if not result.ok:
            raise AuthSessionMissingError(
                "Not logged in to Azure CLI. Run: az login",
                self._provider_name,
            )

        result = await self._run(AZ_TOKEN_ARGS)
        token = _parse_cli_token(result.stdout, self._clock()) if result.returncode == 0 else None
        if token is None:
            detail = result.stderr.strip() or "empty token"
            raise AuthenticationError(
                f"Failed to get access token from Azure CLI: {detail}",
                self._provider_name,
            )
        return token


@asynccontextmanager
async def _metadata_client(
    timeout_seconds: float, transport: Optional[httpx.AsyncBaseTransport]
) -> AsyncIterator[httpx.AsyncClient]:
    """Short-lived client for metadata calls.

    A transport handed in by the caller is shared with the provider's
    completion client, so it is left open; only a client-owned transport
    is closed on exit.
    """
    client = create_http_client(timeout_seconds=timeout_seconds, transport=transport)
    try:
        yield client
    finally:
        if transport is None:
            await client.aclose()


class ManagedIdentityTokenSource:
    """Acquires tokens from the Azure instance metadata service (IMDS)."""

    def __init__(
        self,
        timeout_seconds: float,
        client_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
        provider_name: str = DEFAULT_PROVIDER_NAME,
    ) -> None:
        self._timeout_seconds = min(timeout_seconds, IMDS_MAX_TIMEOUT_SECONDS)
        self._client_id = client_id
        self._transport = transport
        self._clock = clock
        self._provider_name = provider_name

    def _params(self) -> dict[str, str]:
        params = {
            "api-version": IMDS_TOKEN_API_VERSION,
            "resource": COGNITIVE_SERVICES_RESOURCE,
        }
        if self._client_id:
            params["client_id"] = self._client_id
        return params

    async def fetch(self) -> CachedToken:
        try:
            async with _metadata_client(
                timeout_seconds=self._timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(
                    IMDS_TOKEN_URL, params=self._params(), headers={"Metadata": "true"}
                )
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise AuthEnvironmentMismatchError(
                "Managed identity not available. Are you running in Azure?",
                self._provider_name,
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                "Managed identity token request timed out", self._provider_name
            ) from e
        except httpx.HTTPError as e:
            raise AuthEnvironmentMismatchError(
                f"Managed identity endpoint unreachable: {e}", self._provider_name
            ) from e

        if response.status_code in (400, 403):
            raise AuthorizationError(
                "Managed identity not configured or lacks permissions for Azure OpenAI",
                self._provider_name,
                status_code=response.status_code,
            )
        if response.is_error:
            raise AuthenticationError(
                f"Failed to get managed identity token: HTTP {response.status_code}",
                self._provider_name,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise AuthenticationError(
                "Managed identity response did not contain an access token",
                self._provider_name,
            )

        try:
            expires_in = float(data.get("expires_in"))
        except (TypeError, ValueError):
            expires_in = DEFAULT_TOKEN_LIFETIME_SECONDS
        return CachedToken(access_token=access_token, expires_on=self._clock() + expires_in)


# =============================================================================
# Credential Resolver
# =============================================================================


class CredentialResolver:
    """
    Resolves request credentials for one Azure OpenAI provider.

    Args:
        auth_method: apiKey, azureCli or managedIdentity.
        api_key: Static key (apiKey only).
        managed_identity_client_id: User-assigned identity client id.
        timeout_seconds: Provider timeout; bounds CLI commands and IMDS calls.
        clock: Epoch-seconds clock used for token expiry.
        command_runner: Subprocess runner for the CLI strategy.
        transport: httpx transport for the managed identity strategy.
        provider_name: Display name used in errors.

    Example:
        >>> resolver = CredentialResolver(AuthMethod.API_KEY, api_key="k")
        >>> await resolver.get_auth_headers()
        {'api-key': 'k'}
    """

    def __init__(
        self,
        auth_method: AuthMethod,
        *,
        api_key: Optional[str] = None,
        managed_identity_client_id: Optional[str] = None,
        timeout_seconds: float = 30.0,
        clock: Callable[[], float] = time.time,
        command_runner: Optional[CommandRunner] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        provider_name: str = DEFAULT_PROVIDER_NAME,
    ) -> None:
        self._auth_method = auth_method
        self._api_key = api_key or ""
        self._clock = clock
        self._provider_name = provider_name
        self._cached: Optional[CachedToken] = None

        self._source: Optional[TokenSource]
        if auth_method is AuthMethod.AZURE_CLI:
            self._source = AzureCliTokenSource(
                timeout_seconds, runner=command_runner, clock=clock, provider_name=provider_name
            )
        elif auth_method is AuthMethod.MANAGED_IDENTITY:
            self._source = ManagedIdentityTokenSource(
                timeout_seconds,
                client_id=managed_identity_client_id,
                transport=transport,
                clock=clock,
                provider_name=provider_name,
            )
        else:
            self._source = None

    @property
    def auth_method(self) -> AuthMethod:
        return self._auth_method

    @property
    def cached_token(self) -> Optional[CachedToken]:
        return self._cached

    async def get_token(self) -> str:
        """
        Return a usable credential string.

        Raises:
            AuthenticationError: apiKey method without a key, or the token
                step failed.
            AuthToolUnavailableError, AuthSessionMissingError,
            AuthEnvironmentMismatchError, AuthorizationError,
            ProviderTimeoutError: Strategy-specific failures.
        """
        if self._source is None:
            if not self._api_key:
                raise AuthenticationError(
                    "API key is required for apiKey authentication", self._provider_name
                )
            return self._api_key

        method = self._auth_method.value
        cached = self._cached
        if cached is not None and cached.is_valid(self._clock()):
            record_token_fetch(method, "hit")
            return cached.access_token

        try:
            token = await self._source.fetch()
        except ProviderError as e:
            record_token_fetch(method, "failed")
            logger.warning("token_fetch_failed", auth_method=method, error_code=e.error_code.value)
            raise

        self._cached = token
        record_token_fetch(method, "fetched")
        logger.info("token_fetched", auth_method=method, expires_on=token.expires_on)
        return token.access_token

    async def get_auth_headers(self) -> dict[str, str]:
        """Return the headers that authenticate one request."""
        token = await self.get_token()
        if self._source is None:
            return {"api-key": token}
        return {"Authorization": f"Bearer {token}"}

    def clear_cache(self) -> None:
        """Drop the cached token so the next request fetches a new one."""
        self._cached = None


# =============================================================================
# Environment Probes
# =============================================================================


async def is_cli_available(runner: Optional[CommandRunner] = None) -> bool:
    """True when `az --version` runs successfully."""
    try:
        result = await (runner or run_command)(AZ_VERSION_ARGS, CLI_PROBE_TIMEOUT_SECONDS)
    except (OSError, asyncio.TimeoutError):
        return False
    return result.ok


async def is_cli_authenticated(runner: Optional[CommandRunner] = None) -> bool:
    """True when `az account show` reports a logged-in session."""
    try:
        result = await (runner or run_command)(AZ_ACCOUNT_ARGS, CLI_PROBE_TIMEOUT_SECONDS)
    except (OSError, asyncio.TimeoutError):
        return False
    return result.ok


async def is_azure_environment(transport: Optional[httpx.AsyncBaseTransport] = None) -> bool:
    """True when the instance metadata service answers."""
    try:
        async with _metadata_client(
            timeout_seconds=IMDS_PROBE_TIMEOUT_SECONDS, transport=transport
        ) as client:
            response = await client.get(
                IMDS_INSTANCE_URL,
                params={"api-version": IMDS_INSTANCE_API_VERSION},
                headers={"Metadata": "true"},
            )
    except httpx.HTTPError:
        return False
    return response.is_success
