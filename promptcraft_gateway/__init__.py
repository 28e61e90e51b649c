"""PromptCraft Gateway - uniform async access to Groq, OpenAI and Azure OpenAI.

Typical host wiring:

    registry = ProviderRegistry()
    ProviderFactory(registry, get_settings()).initialize()
    response = await registry.require_active().complete(request)

Note: Import from the subpackages (`promptcraft_gateway.providers`,
`promptcraft_gateway.models`, `promptcraft_gateway.core`) directly.
"""

__version__ = "0.1.0"

__all__ = ["auth", "clients", "core", "models", "observability", "providers"]
