"""Provider Factory - builds providers from flat configuration.

The factory reads a GatewaySettings (or a plain mapping with the same
shape), builds a provider for every section that carries its minimum
fields, registers them, then resolves the active provider.

Minimum fields:
    groq, openai:  a non-empty API key (config value, else GROQ_API_KEY /
                   OPENAI_API_KEY from the environment)
    azure_openai:  a non-empty endpoint and deployment name; the key
                   (config, else AZURE_OPENAI_API_KEY) is only needed for
                   the apiKey auth method

A section that is absent or lacks its minimum fields is "not configured",
never an error.
"""

import os
import time
from collections.abc import Mapping
from typing import Any, Callable, Optional, Union

import httpx

from promptcraft_gateway.auth.credentials import CommandRunner
from promptcraft_gateway.clients.http import clamp_timeout
from promptcraft_gateway.core.config import (
    AzureOpenAISettings,
    GatewaySettings,
    GroqSettings,
    OpenAISettings,
)
from promptcraft_gateway.core.exceptions import UnsupportedProviderError
from promptcraft_gateway.models.descriptors import (
    GROQ_BASE_URL,
    OPENAI_BASE_URL,
    OPENAI_DEFAULT_MODEL,
    AzureOpenAIDescriptor,
    GroqDescriptor,
    OpenAIDescriptor,
    ProviderDescriptor,
)
from promptcraft_gateway.models.domain import ProviderType
from promptcraft_gateway.observability.logging import get_logger
from promptcraft_gateway.providers.azure_openai import AzureOpenAIProvider
from promptcraft_gateway.providers.base import LLMProvider
from promptcraft_gateway.providers.groq import (
    GROQ_DEFAULT_TIMEOUT_SECONDS,
    GROQ_MAX_TIMEOUT_SECONDS,
    GROQ_MIN_TIMEOUT_SECONDS,
    GroqProvider,
)
from promptcraft_gateway.providers.health import HealthMonitor
from promptcraft_gateway.providers.openai import OpenAIProvider
from promptcraft_gateway.providers.registry import ProviderRegistry

logger = get_logger(__name__)

SettingsSource = Union[
    GatewaySettings,
    Mapping[str, Any],
    Callable[[], Union[GatewaySettings, Mapping[str, Any]]],
]

ENV_API_KEYS = {
    ProviderType.GROQ: "GROQ_API_KEY",
    ProviderType.OPENAI: "OPENAI_API_KEY",
    ProviderType.AZURE_OPENAI: "AZURE_OPENAI_API_KEY",
}

SECTION_MODELS = {
    ProviderType.GROQ: GroqSettings,
    ProviderType.OPENAI: OpenAISettings,
    ProviderType.AZURE_OPENAI: AzureOpenAISettings,
}

SectionSettings = Union[GroqSettings, OpenAISettings, AzureOpenAISettings]


def _resolve_key(provider_type: ProviderType, configured: str) -> str:
    """Configuration wins; the environment fills an empty key."""
    key = configured.strip()
    if key:
        return key
    return os.environ.get(ENV_API_KEYS[provider_type], "").strip()


class ProviderFactory:
    """Builds providers from settings and populates a registry.

    Args:
        registry: The registry to populate.
        settings_source: GatewaySettings, a mapping of the same shape, or a
            zero-argument callable returning either. A callable is re-invoked
            on every reload(). Defaults to reading the environment.
        transport: httpx transport handed to every provider (tests).
        command_runner: Subprocess runner for Azure CLI auth (tests).
        clock: Epoch-seconds clock for token expiry (tests).
        health_monitor: Probe runner shared by every provider; built from
            settings.health_degraded_after_ms when omitted.

    Example:
        >>> registry = ProviderRegistry()
        >>> factory = ProviderFactory(registry, {"groq": {"apiKey": "gsk-..."}})
        >>> providers = factory.initialize()
        >>> registry.get_active().get_type()
        <ProviderType.GROQ: 'groq'>
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        settings_source: Optional[SettingsSource] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        command_runner: Optional[CommandRunner] = None,
        clock: Callable[[], float] = time.time,
        health_monitor: Optional[HealthMonitor] = None,
    ) -> None:
        self._registry = registry
        self._settings_source: SettingsSource = (
            settings_source if settings_source is not None else GatewaySettings
        )
        self._transport = transport
        self._command_runner = command_runner
        self._clock = clock
        self._health_monitor = health_monitor

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    # =========================================================================
    # Settings
    # =========================================================================

    def load_settings(self) -> GatewaySettings:
        """Read the settings source once."""
        source = self._settings_source
        if callable(source) and not isinstance(source, (GatewaySettings, Mapping)):
            source = source()
        if isinstance(source, GatewaySettings):
            return source
        return GatewaySettings.model_validate(dict(source))

    # =========================================================================
    # Initialization
    # =========================================================================

    def initialize(self) -> list[LLMProvider]:
        """Build and register every configured provider, then pick the active one.

        Returns:
            The providers now registered.

        Raises:
            ConfigurationError: A section has its minimum fields but is
                malformed (for example an Azure endpoint that is not a URL).
        """
        settings = self.load_settings()
        monitor = self._health_monitor or HealthMonitor(settings.health_degraded_after_ms)

        sections: list[tuple[ProviderType, Optional[SectionSettings]]] = [
            (ProviderType.GROQ, settings.groq),
            (ProviderType.OPENAI, settings.openai),
            (ProviderType.AZURE_OPENAI, settings.azure_openai),
        ]
        for provider_type, section in sections:
            if section is None:
                continue
            if not section.enabled:
                logger.info("provider_disabled", provider=provider_type.value)
                continue

            descriptor = self.build_descriptor(provider_type, section)
            if descriptor is None:
                logger.info("provider_not_configured", provider=provider_type.value)
                continue

            self._registry.register(self._create(descriptor, monitor))

        self._resolve_active(settings.active_provider)

        registered = self._registry.get_all()
        if not registered:
            logger.warning("no_providers_configured")
        return registered

    def reload(self) -> list[LLMProvider]:
        """Clear the registry and run a fresh initialize().

        Provider HTTP clients from the previous run are not closed here;
        await registry.aclose() first to release them.
        """
        logger.info("providers_reloading")
        self._registry.clear()
        return self.initialize()

    def _resolve_active(self, requested: Optional[str]) -> None:
        if requested and not self._registry.set_active(requested):
            logger.warning("requested_active_provider_unavailable", provider=requested)

        active = self._registry.get_active()
        logger.info(
            "active_provider_resolved",
            provider=active.get_type().value if active is not None else None,
        )

    # =========================================================================
    # Descriptors
    # =========================================================================

    @staticmethod
    def build_descriptor(
        provider_type: Union[ProviderType, str],
        section: Union[SectionSettings, Mapping[str, Any]],
    ) -> Optional[ProviderDescriptor]:
        """Convert one settings section into its descriptor.

        Strings are trimmed, an empty key is filled from the environment and
        the timeout is clamped.

        Returns:
            The descriptor, or None when the minimum fields are missing.

        Raises:
            UnsupportedProviderError: A reserved or unknown type.
        """
        kind = _implemented_type(provider_type)
        if isinstance(section, Mapping):
            section = SECTION_MODELS[kind].model_validate(dict(section))

        if isinstance(section, GroqSettings):
            api_key = _resolve_key(kind, section.api_key.get_secret_value())
            if not api_key:
                return None
            return GroqDescriptor(
                enabled=section.enabled,
                api_key=api_key,
                base_url=(section.base_url or "").strip() or GROQ_BASE_URL,
                timeout_seconds=clamp_timeout(
                    section.timeout_seconds,
                    default=GROQ_DEFAULT_TIMEOUT_SECONDS,
                    minimum=GROQ_MIN_TIMEOUT_SECONDS,
                    maximum=GROQ_MAX_TIMEOUT_SECONDS,
                ),
            )

        if isinstance(section, OpenAISettings):
            api_key = _resolve_key(kind, section.api_key.get_secret_value())
            if not api_key:
                return None
            return OpenAIDescriptor(
                enabled=section.enabled,
                api_key=api_key,
                model=section.model.strip() or OPENAI_DEFAULT_MODEL,
                base_url=(section.base_url or "").strip() or OPENAI_BASE_URL,
                timeout_seconds=clamp_timeout(section.timeout_seconds),
            )

        endpoint = section.endpoint.strip()
        deployment = section.deployment_name.strip()
        if not endpoint or not deployment:
            return None
        return AzureOpenAIDescriptor(
            enabled=section.enabled,
            endpoint=endpoint,
            deployment_name=deployment,
            api_key=_resolve_key(kind, section.api_key.get_secret_value()),
            api_version=section.api_version.strip(),
            auth_method=section.auth_method,
            managed_identity_client_id=(section.managed_identity_client_id or "").strip() or None,
            timeout_seconds=clamp_timeout(section.timeout_seconds),
        )

    # =========================================================================
    # Provider Construction
    # =========================================================================

    @staticmethod
    def create_provider(
        descriptor: ProviderDescriptor,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        command_runner: Optional[CommandRunner] = None,
        clock: Callable[[], float] = time.time,
        health_monitor: Optional[HealthMonitor] = None,
    ) -> LLMProvider:
        """Instantiate the provider matching a descriptor's type tag.

        Raises:
            ConfigurationError: The descriptor fails construction-time checks.
        """
        if isinstance(descriptor, GroqDescriptor):
            return GroqProvider(
                descriptor, transport=transport, health_monitor=health_monitor
            )
        if isinstance(descriptor, OpenAIDescriptor):
            return OpenAIProvider(
                descriptor, transport=transport, health_monitor=health_monitor
            )
        if isinstance(descriptor, AzureOpenAIDescriptor):
            return AzureOpenAIProvider(
                descriptor,
                transport=transport,
                command_runner=command_runner,
                clock=clock,
                health_monitor=health_monitor,
            )
        raise UnsupportedProviderError(
            f"No provider implementation for descriptor {type(descriptor).__name__}",
            provider_type=str(getattr(descriptor, "type", "unknown")),
        )

    def create_provider_for_type(
        self,
        provider_type: Union[ProviderType, str],
        config: Union[SectionSettings, Mapping[str, Any]],
    ) -> Optional[LLMProvider]:
        """Build (but do not register) a provider for one type.

        Returns:
            The provider, or None when config lacks the minimum fields.

        Raises:
            UnsupportedProviderError: A reserved or unknown type.
        """
        descriptor = self.build_descriptor(provider_type, config)
        if descriptor is None:
            return None
        return self._create(descriptor, self._health_monitor)

    def _create(
        self, descriptor: ProviderDescriptor, monitor: Optional[HealthMonitor]
    ) -> LLMProvider:
        return self.create_provider(
            descriptor,
            transport=self._transport,
            command_runner=self._command_runner,
            clock=self._clock,
            health_monitor=monitor,
        )


def _implemented_type(provider_type: Union[ProviderType, str]) -> ProviderType:
    try:
        kind = ProviderType(provider_type)
    except ValueError:
        raise UnsupportedProviderError(
            f"Unknown provider type: {provider_type}", provider_type=str(provider_type)
        ) from None
    if kind not in ProviderType.implemented():
        raise UnsupportedProviderError(
            f"Provider type '{kind.value}' is reserved and not implemented",
            provider_type=kind.value,
        )
    return kind
