"""
Providers Package - LLM Provider Adapters

This package contains the provider contract, the Groq, OpenAI and Azure
OpenAI adapters, and the registry, factory and health monitor that manage
them.
"""

from promptcraft_gateway.providers.azure_openai import AzureOpenAIProvider
from promptcraft_gateway.providers.base import LLMProvider
from promptcraft_gateway.providers.factory import ProviderFactory
from promptcraft_gateway.providers.groq import GroqProvider
from promptcraft_gateway.providers.health import HealthMonitor, probe
from promptcraft_gateway.providers.openai import OpenAIProvider
from promptcraft_gateway.providers.registry import ProviderRegistry

__all__ = [
    "LLMProvider",
    "GroqProvider",
    "OpenAIProvider",
    "AzureOpenAIProvider",
    "ProviderRegistry",
    "ProviderFactory",
    "HealthMonitor",
    "probe",
]
