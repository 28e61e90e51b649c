"""Provider Registry - tracks instantiated providers and the active one.

The registry is an explicitly constructed object owned by the host
application and passed to whoever needs it. It keeps one provider per
type plus a nullable "active type" pointer.

Invariant: a recorded active type always names a registered provider that
reports itself configured. get_active() self-heals by falling back to the
first configured provider when the pointer no longer satisfies this.
"""

import threading
from typing import Optional, Union

from promptcraft_gateway.core.exceptions import NoActiveProviderError
from promptcraft_gateway.models.domain import ProviderType
from promptcraft_gateway.observability.logging import get_logger
from promptcraft_gateway.providers.base import LLMProvider

logger = get_logger(__name__)


def _coerce_type(value: Union[ProviderType, str]) -> Optional[ProviderType]:
    try:
        return ProviderType(value)
    except ValueError:
        return None


class ProviderRegistry:
    """Table of providers keyed by type, with an active selection.

    Mutations and the self-healing read are guarded by a reentrant lock, so
    a host may call set_active() from a user action while a completion is
    in flight elsewhere.

    Example:
        >>> registry = ProviderRegistry()
        >>> registry.register(groq_provider)
        >>> registry.get_active() is groq_provider
        True
    """

    def __init__(self) -> None:
        self._providers: dict[ProviderType, LLMProvider] = {}
        self._active_type: Optional[ProviderType] = None
        self._lock = threading.RLock()

    def register(self, provider: LLMProvider) -> None:
        """Insert or replace the entry keyed by the provider's type."""
        with self._lock:
            provider_type = provider.get_type()
            self._providers[provider_type] = provider
        logger.info("provider_registered", provider=provider_type.value)

    def unregister(self, provider_type: Union[ProviderType, str]) -> Optional[LLMProvider]:
        """Remove a provider; the active pointer is reset if it named it.

        Returns:
            The removed provider, or None if the type was not registered.
        """
        key = _coerce_type(provider_type)
        if key is None:
            return None
        with self._lock:
            removed = self._providers.pop(key, None)
            if key == self._active_type:
                self._active_type = None
        return removed

    def get(self, provider_type: Union[ProviderType, str]) -> Optional[LLMProvider]:
        key = _coerce_type(provider_type)
        if key is None:
            return None
        return self._providers.get(key)

    def get_all(self) -> list[LLMProvider]:
        with self._lock:
            return list(self._providers.values())

    def get_configured(self) -> list[LLMProvider]:
        return [p for p in self.get_all() if p.is_configured()]

    def set_active(self, provider_type: Union[ProviderType, str]) -> bool:
        """Record a provider as active.

        Returns:
            False (never raises) if the type is unknown, unregistered or its
            provider is unconfigured; True otherwise.
        """
        key = _coerce_type(provider_type)
        with self._lock:
            provider = self._providers.get(key) if key is not None else None
            if provider is None or not provider.is_configured():
                logger.warning("set_active_rejected", provider=str(provider_type))
                return False
            self._active_type = key
        logger.info("active_provider_changed", provider=key.value)
        return True

    def get_active(self) -> Optional[LLMProvider]:
        """Return the active provider, selecting one lazily if needed.

        If no valid active type is recorded, the first configured provider
        in registration order becomes active. Returns None when no provider
        is configured.
        """
        with self._lock:
            if self._active_type is not None:
                provider = self._providers.get(self._active_type)
                if provider is not None and provider.is_configured():
                    return provider

            for provider_type, provider in self._providers.items():
                if provider.is_configured():
                    self._active_type = provider_type
                    logger.info("active_provider_selected", provider=provider_type.value)
                    return provider

            self._active_type = None
            return None

    def get_active_type(self) -> Optional[ProviderType]:
        provider = self.get_active()
        return provider.get_type() if provider is not None else None

    def require_active(self) -> LLMProvider:
        """Like get_active(), but raise when no provider is available.

        Raises:
            NoActiveProviderError: No configured provider is registered.
        """
        provider = self.get_active()
        if provider is None:
            raise NoActiveProviderError("No configured LLM provider is available")
        return provider

    def clear(self) -> None:
        """Empty the table and reset the active pointer.

        Provider HTTP clients are not closed; call aclose() first to
        release them.
        """
        with self._lock:
            self._providers.clear()
            self._active_type = None

    async def aclose(self) -> None:
        """Close every registered provider's HTTP client."""
        for provider in self.get_all():
            await provider.aclose()

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, provider_type: object) -> bool:
        if not isinstance(provider_type, (ProviderType, str)):
            return False
        key = _coerce_type(provider_type)
        return key is not None and key in self._providers
