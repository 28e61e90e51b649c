"""
Tests for ProviderFactory - building providers from flat configuration.
"""

import pytest

from promptcraft_gateway.core.config import GatewaySettings, GroqSettings
from promptcraft_gateway.core.exceptions import (
    ConfigurationError,
    UnsupportedProviderError,
)
from promptcraft_gateway.models.descriptors import (
    AzureOpenAIDescriptor,
    GroqDescriptor,
    OpenAIDescriptor,
)
from promptcraft_gateway.models.domain import AuthMethod, ProviderType
from promptcraft_gateway.providers.azure_openai import AzureOpenAIProvider
from promptcraft_gateway.providers.factory import ProviderFactory
from promptcraft_gateway.providers.groq import GroqProvider
from promptcraft_gateway.providers.openai import OpenAIProvider
from promptcraft_gateway.providers.registry import ProviderRegistry

AZURE_SECTION = {
    "endpoint": "https://contoso.openai.azure.com/",
    "deploymentName": "gpt4-prod",
    "authMethod": "azureCli",
}


def _factory(config, **kwargs) -> tuple[ProviderRegistry, ProviderFactory]:
    registry = ProviderRegistry()
    return registry, ProviderFactory(registry, config, **kwargs)


class TestInitialize:
    """Tests for initialize()."""

    def test_empty_configuration(self):
        registry, factory = _factory({})

        assert factory.initialize() == []
        assert registry.get_active() is None

    def test_builds_sections_with_minimum_fields(self):
        registry, factory = _factory(
            {
                "groq": {"apiKey": "gsk"},
                "openai": {"apiKey": "sk"},
                "azure_openai": AZURE_SECTION,
            }
        )

        factory.initialize()

        assert isinstance(registry.get(ProviderType.GROQ), GroqProvider)
        assert isinstance(registry.get(ProviderType.OPENAI), OpenAIProvider)
        assert isinstance(registry.get(ProviderType.AZURE_OPENAI), AzureOpenAIProvider)

    def test_sections_without_minimum_fields_skipped(self):
        registry, factory = _factory(
            {
                "groq": {"apiKey": "  "},
                "openai": {"model": "gpt-4"},
                "azure_openai": {"endpoint": "https://contoso.openai.azure.com"},
            }
        )

        assert factory.initialize() == []

    def test_disabled_section_skipped(self):
        registry, factory = _factory({"groq": {"apiKey": "gsk", "enabled": False}})

        factory.initialize()

        assert registry.get(ProviderType.GROQ) is None

    def test_env_key_fallback(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "gsk-from-env")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        registry, factory = _factory({"groq": {}})

        factory.initialize()

        groq = registry.get(ProviderType.GROQ)
        assert groq.descriptor.api_key.get_secret_value() == "gsk-from-env"
        assert registry.get(ProviderType.OPENAI) is None

    def test_config_key_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        registry, factory = _factory({"openai": {"apiKey": "sk-config"}})

        factory.initialize()

        assert registry.get("openai").descriptor.api_key.get_secret_value() == "sk-config"

    def test_explicit_active_provider(self):
        registry, factory = _factory(
            {"groq": {"apiKey": "gsk"}, "openai": {"apiKey": "sk"}, "active_provider": "openai"}
        )

        factory.initialize()

        assert registry.get_active_type() is ProviderType.OPENAI

    def test_first_configured_fallback(self):
        registry, factory = _factory(
            {"groq": {"apiKey": "gsk"}, "openai": {"apiKey": "sk"}, "active_provider": "claude"}
        )

        factory.initialize()

        assert registry.get_active_type() is ProviderType.GROQ

    def test_malformed_azure_endpoint_propagates(self):
        registry, factory = _factory(
            {"azure_openai": {**AZURE_SECTION, "endpoint": "contoso.openai.azure.com"}}
        )

        with pytest.raises(ConfigurationError):
            factory.initialize()

    def test_accepts_settings_instance(self):
        registry, factory = _factory(GatewaySettings(groq=GroqSettings(api_key="gsk")))

        factory.initialize()

        assert registry.get_active_type() is ProviderType.GROQ


class TestReload:
    """Tests for reload()."""

    def test_reload_rereads_callable_source(self):
        configs = iter(
            [
                {"groq": {"apiKey": "gsk"}, "openai": {"apiKey": "sk"}},
                {"groq": {"apiKey": "gsk"}},
            ]
        )
        registry, factory = _factory(lambda: next(configs))

        factory.initialize()
        assert registry.set_active(ProviderType.OPENAI)

        factory.reload()

        assert registry.get(ProviderType.OPENAI) is None
        assert registry.get_active_type() is ProviderType.GROQ

    def test_reload_replaces_provider_instances(self):
        registry, factory = _factory({"groq": {"apiKey": "gsk"}})
        factory.initialize()
        before = registry.get(ProviderType.GROQ)

        factory.reload()

        assert registry.get(ProviderType.GROQ) is not before


class TestBuildDescriptor:
    """Tests for build_descriptor()."""

    def test_groq_timeout_clamped(self):
        fast = ProviderFactory.build_descriptor("groq", {"apiKey": "gsk", "timeoutSeconds": 90})
        default = ProviderFactory.build_descriptor("groq", {"apiKey": "gsk"})

        assert isinstance(fast, GroqDescriptor)
        assert fast.timeout_seconds == 20.0
        assert default.timeout_seconds == 5.0

    def test_openai_defaults(self):
        descriptor = ProviderFactory.build_descriptor(
            ProviderType.OPENAI, {"apiKey": " sk ", "model": " ", "timeoutSeconds": 0.1}
        )

        assert isinstance(descriptor, OpenAIDescriptor)
        assert descriptor.api_key.get_secret_value() == "sk"
        assert descriptor.model == "gpt-4-turbo"
        assert descriptor.timeout_seconds == 1.0

    def test_azure_fields(self, monkeypatch):
        monkeypatch.setenv("AZURE_OPENAI_API_KEY", "azure-env-key")

        descriptor = ProviderFactory.build_descriptor(
            "azure-openai", {**AZURE_SECTION, "managedIdentityClientId": " "}
        )

        assert isinstance(descriptor, AzureOpenAIDescriptor)
        assert descriptor.auth_method is AuthMethod.AZURE_CLI
        assert descriptor.deployment_name == "gpt4-prod"
        assert descriptor.api_version == "2024-02-01"
        assert descriptor.api_key.get_secret_value() == "azure-env-key"
        assert descriptor.managed_identity_client_id is None
        assert descriptor.timeout_seconds == 30.0

    def test_azure_missing_deployment(self):
        assert ProviderFactory.build_descriptor(
            "azure-openai", {"endpoint": "https://contoso.openai.azure.com"}
        ) is None

    @pytest.mark.parametrize("provider_type", ["claude", "ollama", "custom", "bard"])
    def test_reserved_and_unknown_types(self, provider_type):
        with pytest.raises(UnsupportedProviderError) as exc_info:
            ProviderFactory.build_descriptor(provider_type, {})

        assert exc_info.value.provider_type == provider_type


class TestCreateProvider:
    """Tests for create_provider() and create_provider_for_type()."""

    def test_dispatch_on_descriptor_type(self):
        assert isinstance(
            ProviderFactory.create_provider(GroqDescriptor(api_key="gsk")), GroqProvider
        )
        assert isinstance(
            ProviderFactory.create_provider(OpenAIDescriptor(api_key="sk")), OpenAIProvider
        )
        assert isinstance(
            ProviderFactory.create_provider(
                AzureOpenAIDescriptor(endpoint="https://x.openai.azure.com", deployment_name="d")
            ),
            AzureOpenAIProvider,
        )

    def test_create_for_type(self):
        registry, factory = _factory({})

        provider = factory.create_provider_for_type("groq", {"apiKey": "gsk"})

        assert isinstance(provider, GroqProvider)
        assert registry.get_all() == []

    def test_create_for_type_without_minimum_fields(self):
        registry, factory = _factory({})

        assert factory.create_provider_for_type("openai", {}) is None

    def test_create_for_reserved_type(self):
        registry, factory = _factory({})

        with pytest.raises(UnsupportedProviderError):
            factory.create_provider_for_type(ProviderType.OLLAMA, {})
