"""
Pytest configuration for the gateway test suite.

This configuration sets up:
- Test markers for categorization
- Environment isolation for the provider API key fallbacks
- Fake backends built on httpx.MockTransport
- A fake Azure CLI command runner and a controllable clock
"""

import json
from typing import Any, Callable, Optional

import pytest
import httpx

from promptcraft_gateway.auth.credentials import CommandResult


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """
    Register custom markers for test categorization.

    - unit: Tests for individual components
    - integration: End-to-end scenarios across registry, factory and providers
    """
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: End-to-end scenarios")


# =============================================================================
# Environment Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_provider_env(monkeypatch):
    """Remove provider API keys so the host environment never leaks into tests."""
    for name in ("GROQ_API_KEY", "OPENAI_API_KEY", "AZURE_OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    yield


# =============================================================================
# Fake Backend Helpers
# =============================================================================


def chat_completion_body(
    content: str = "Hello from the fake backend",
    model: Optional[str] = "llama3-8b-8192",
    finish_reason: str = "stop",
    usage: Optional[dict[str, int]] = None,
) -> dict[str, Any]:
    """Build a chat-completions success body."""
    body: dict[str, Any] = {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": finish_reason,
            }
        ],
        "usage": usage
        or {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
    }
    if model is not None:
        body["model"] = model
    return body


class RecordingBackend:
    """
    httpx.MockTransport handler that records requests.

    Args:
        respond: Callable mapping a request to a response. Defaults to a
            200 chat-completions body.
    """

    def __init__(
        self, respond: Optional[Callable[[httpx.Request], httpx.Response]] = None
    ) -> None:
        self.requests: list[httpx.Request] = []
        self._respond = respond or (
            lambda request: httpx.Response(200, json=chat_completion_body())
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last_json(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def backend() -> RecordingBackend:
    """A recording fake backend that answers with a chat completion."""
    return RecordingBackend()


# =============================================================================
# Fake Azure CLI and Clock
# =============================================================================


class FakeCommandRunner:
    """
    Scripted stand-in for the Azure CLI subprocess runner.

    Args:
        results: Map from "version", "show" or "token" to the CommandResult
            or exception that step produces.
    """

    def __init__(self, results: dict[str, Any]) -> None:
        self._results = results
        self.calls: list[tuple[str, ...]] = []

    @staticmethod
    def key(args) -> str:
        if args[1] == "--version":
            return "version"
        if tuple(args[1:3]) == ("account", "show"):
            return "show"
        return "token"

    async def __call__(self, args, timeout_seconds: float) -> CommandResult:
        self.calls.append(tuple(args))
        outcome = self._results[self.key(args)]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def logged_in_cli(token: str = "cli-token", expires_on: Optional[float] = None) -> FakeCommandRunner:
    """A runner for an installed, logged-in CLI that issues `token`."""
    stdout = token if expires_on is None else f"{token}\n{int(expires_on)}"
    return FakeCommandRunner(
        {
            "version": CommandResult(0, "azure-cli 2.60.0"),
            "show": CommandResult(0, '{"name": "sub"}'),
            "token": CommandResult(0, stdout + "\n"),
        }
    )


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def completion_body() -> Callable[..., dict[str, Any]]:
    """Builder for chat-completions success bodies."""
    return chat_completion_body


@pytest.fixture
def make_backend() -> Callable[..., RecordingBackend]:
    """Factory for recording fake backends with a custom responder."""
    return RecordingBackend


@pytest.fixture
def make_cli_runner() -> Callable[..., FakeCommandRunner]:
    """Factory for scripted Azure CLI runners."""
    return FakeCommandRunner


@pytest.fixture
def cli_runner() -> FakeCommandRunner:
    """An installed, logged-in Azure CLI issuing `cli-token` with no expiry line."""
    return logged_in_cli()


@pytest.fixture
def make_logged_in_cli() -> Callable[..., FakeCommandRunner]:
    return logged_in_cli
