"""
Core configuration module for the PromptCraft gateway.

This module provides the flat, per-backend configuration map the provider
factory consumes. Settings load from environment variables with the
PROMPTCRAFT_ prefix (nested sections use a double underscore, e.g.
PROMPTCRAFT_AZURE_OPENAI__DEPLOYMENT_NAME) or from a plain mapping handed
over by the host application.

A section that is entirely absent means "not configured". A present
section without its minimum fields is also treated as not configured by
the factory; it is never an error here.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from promptcraft_gateway.models.descriptors import (
    AZURE_DEFAULT_API_VERSION,
    OPENAI_DEFAULT_MODEL,
)
from promptcraft_gateway.models.domain import AuthMethod


# =============================================================================
# Per-backend Sections
# Sections accept snake_case keys and the camelCase keys host editors use
# (apiKey, deploymentName, authMethod, ...).
# =============================================================================


class _Section(BaseModel):
    """Keys shared by every backend section."""

    enabled: bool = Field(default=True, description="Set false to skip this backend")
    timeout_seconds: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("timeout_seconds", "timeoutSeconds", "timeout"),
        description="Request timeout in seconds (clamped by the factory)",
    )

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }


class GroqSettings(_Section):
    """Fast-inference backend section."""

    api_key: SecretStr = Field(default=SecretStr(""))
    base_url: Optional[str] = Field(default=None)


class OpenAISettings(_Section):
    """Commercial backend section."""

    api_key: SecretStr = Field(default=SecretStr(""))
    model: str = Field(default=OPENAI_DEFAULT_MODEL)
    base_url: Optional[str] = Field(default=None)


class AzureOpenAISettings(_Section):
    """Enterprise backend section."""

    endpoint: str = Field(default="")
    api_key: SecretStr = Field(default=SecretStr(""))
    deployment_name: str = Field(default="")
    api_version: str = Field(default=AZURE_DEFAULT_API_VERSION)
    auth_method: AuthMethod = Field(default=AuthMethod.API_KEY)
    managed_identity_client_id: Optional[str] = Field(default=None)

    @field_validator("api_version", mode="before")
    @classmethod
    def default_blank_api_version(cls, v: Optional[str]) -> str:
        """An empty API version falls back to the default."""
        return v or AZURE_DEFAULT_API_VERSION

    @field_validator("auth_method", mode="before")
    @classmethod
    def default_blank_auth_method(cls, v: Optional[str]) -> str:
        """An empty auth method falls back to apiKey."""
        return v or AuthMethod.API_KEY.value


# =============================================================================
# Gateway Settings
# =============================================================================


class GatewaySettings(BaseSettings):
    """
    Gateway settings loaded from environment variables or a mapping.

    All fields use the PROMPTCRAFT_ prefix for environment variables.
    Example: PROMPTCRAFT_GROQ__API_KEY=gsk-...
    """

    # =========================================================================
    # Backend Sections
    # =========================================================================
    groq: Optional[GroqSettings] = Field(default=None)
    openai: Optional[OpenAISettings] = Field(default=None)
    azure_openai: Optional[AzureOpenAISettings] = Field(default=None)

    # =========================================================================
    # Provider Selection
    # =========================================================================
    active_provider: Optional[str] = Field(
        default=None,
        description="Provider type tag to activate; first configured one when unset",
    )

    # =========================================================================
    # Ambient
    # =========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
    )
    health_degraded_after_ms: float = Field(
        default=5000.0,
        ge=1.0,
        description="Probe latency above which a provider reports degraded",
    )

    model_config = SettingsConfigDict(
        env_prefix="PROMPTCRAFT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("active_provider", mode="before")
    @classmethod
    def blank_active_provider(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty string as unset."""
        return v or None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return v.upper() if isinstance(v, str) else v


@lru_cache
def get_settings() -> GatewaySettings:
    """
    Get the settings singleton.

    Uses functools.lru_cache so only one GatewaySettings instance is read
    from the environment. Call get_settings.cache_clear() before a reload
    to pick up changed environment variables.
    """
    return GatewaySettings()
