"""
Provider Descriptors - per-provider identity and typed configuration

Each backend gets its own descriptor variant carrying only its own fields.
The variants form a discriminated union on ``type``, so code that builds a
provider dispatches on the tag instead of reading an untyped option bag.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, SecretStr

from promptcraft_gateway.models.domain import AuthMethod, ProviderType

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"
AZURE_DEFAULT_API_VERSION = "2024-02-01"
OPENAI_DEFAULT_MODEL = "gpt-4-turbo"


class _DescriptorFields(BaseModel):
    """Fields every provider descriptor carries."""

    name: str = Field(..., description="Display name")
    enabled: bool = Field(default=True)
    timeout_seconds: float = Field(default=30.0, gt=0, description="Request timeout")

    model_config = {"frozen": True}


class GroqDescriptor(_DescriptorFields):
    """Fast-inference backend (Groq, OpenAI-compatible API)."""

    type: Literal[ProviderType.GROQ] = ProviderType.GROQ
    name: str = "Groq"
    timeout_seconds: float = Field(default=5.0, gt=0)
    api_key: SecretStr = Field(default=SecretStr(""))
    base_url: str = Field(default=GROQ_BASE_URL)


class OpenAIDescriptor(_DescriptorFields):
    """General commercial backend (OpenAI)."""

    type: Literal[ProviderType.OPENAI] = ProviderType.OPENAI
    name: str = "OpenAI"
    api_key: SecretStr = Field(default=SecretStr(""))
    model: str = Field(default=OPENAI_DEFAULT_MODEL)
    base_url: str = Field(default=OPENAI_BASE_URL)


class AzureOpenAIDescriptor(_DescriptorFields):
    """
    Enterprise backend (Azure OpenAI).

    The key is optional: it is only used by the apiKey auth method.
    """

    type: Literal[ProviderType.AZURE_OPENAI] = ProviderType.AZURE_OPENAI
    name: str = "Azure OpenAI"
    endpoint: str = Field(default="")
    api_key: SecretStr = Field(default=SecretStr(""))
    deployment_name: str = Field(default="")
    api_version: str = Field(default=AZURE_DEFAULT_API_VERSION)
    auth_method: AuthMethod = Field(default=AuthMethod.API_KEY)
    managed_identity_client_id: Optional[str] = Field(default=None)


ProviderDescriptor = Annotated[
    Union[GroqDescriptor, OpenAIDescriptor, AzureOpenAIDescriptor],
    Field(discriminator="type"),
]
