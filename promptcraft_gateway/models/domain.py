"""
Domain Models - provider identity, health, capabilities and credentials

This module contains the small value types shared by providers, the
credential resolver, the registry and the health monitor.

Pattern: Domain models as value objects (frozen where the value is immutable)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Provider Type Tag
# =============================================================================


class ProviderType(str, Enum):
    """
    Stable provider type tags.

    GROQ, OPENAI and AZURE_OPENAI are implemented; the remaining members are
    reserved so configuration can name them, but the factory refuses to
    build them.
    """

    GROQ = "groq"
    OPENAI = "openai"
    AZURE_OPENAI = "azure-openai"
    CLAUDE = "claude"
    OLLAMA = "ollama"
    CUSTOM = "custom"

    @classmethod
    def implemented(cls) -> tuple["ProviderType", ...]:
        """Return the provider types that have an implementation."""
        return (cls.GROQ, cls.OPENAI, cls.AZURE_OPENAI)


class AuthMethod(str, Enum):
    """Authentication strategies for the Azure OpenAI backend."""

    API_KEY = "apiKey"
    AZURE_CLI = "azureCli"
    MANAGED_IDENTITY = "managedIdentity"


# =============================================================================
# Health Status
# =============================================================================


class HealthState(str, Enum):
    """Provider health states."""

    UNKNOWN = "unknown"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(BaseModel):
    """
    Result of the most recent health probe for one provider.

    Owned by its provider and replaced only by the health monitor's probe.

    Attributes:
        state: Current health state.
        last_checked: When the state was recorded (UTC).
        latency_ms: Probe round-trip time, if the probe completed.
        error: Error text from a failed probe.
    """

    state: HealthState = Field(default=HealthState.UNKNOWN)
    last_checked: datetime = Field(default_factory=_utcnow)
    latency_ms: Optional[float] = Field(default=None, ge=0)
    error: Optional[str] = Field(default=None)

    model_config = {"frozen": True}


# =============================================================================
# Capabilities
# =============================================================================


class ProviderCapabilities(BaseModel):
    """
    Informational capability flags. The gateway performs no gating on them.
    """

    streaming: bool = False
    function_calling: bool = False
    vision: bool = False
    embeddings: bool = False

    model_config = {"frozen": True}


# =============================================================================
# Credentials
# =============================================================================


class CachedToken(BaseModel):
    """
    An in-memory bearer token and its absolute expiry.

    Attributes:
        access_token: Opaque bearer string.
        expires_on: Expiry as epoch seconds.
    """

    access_token: str = Field(..., min_length=1)
    expires_on: float

    model_config = {"frozen": True}

    def is_valid(self, now: float) -> bool:
        """True while now is strictly before the expiry."""
        return now < self.expires_on


class AuthStatus(BaseModel):
    """
    Human-oriented authentication status for the Azure OpenAI provider.

    Attributes:
        method: The configured authentication method.
        is_authenticated: Whether the method currently looks usable.
        message: Short description suitable for a status indicator.
    """

    method: AuthMethod
    is_authenticated: bool
    message: str
