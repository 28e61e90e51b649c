"""
Request Models - CompletionRequest

This module contains the Pydantic model for the one logical operation the
gateway offers: "complete this prompt". It is deliberately smaller than a
full chat-completions request; providers translate it into their own wire
shape.

Anti-Patterns Avoided:
- Optional fields use Optional[T] with explicit None default
"""

from typing import Optional

from pydantic import BaseModel, Field


class CompletionRequest(BaseModel):
    """
    Immutable completion request.

    Only model, system and user are required. Absent optional fields fall
    back to the provider's defaults, never to a failure. An empty model
    string asks the provider to use its default model.

    Attributes:
        model: Target model identifier ("" means provider default).
        system: System instruction text.
        user: User instruction text.
        temperature: Sampling temperature (0.0 to 2.0).
        max_tokens: Maximum output tokens.
        stream: Streaming flag (pass-through only).

    Example:
        >>> request = CompletionRequest(model="gpt-4-turbo", system="s", user="u")
        >>> request.temperature is None
        True
    """

    model: str = Field(..., description="Target model identifier")
    system: str = Field(..., description="System instruction text")
    user: str = Field(..., description="User instruction text")
    temperature: Optional[float] = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature"
    )
    max_tokens: Optional[int] = Field(
        default=None, gt=0, description="Maximum output tokens"
    )
    stream: bool = Field(default=False, description="Streaming flag")

    model_config = {"frozen": True}

    def to_messages(self) -> list[dict[str, str]]:
        """Render the request as a system + user chat message list."""
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]
