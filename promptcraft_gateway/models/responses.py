"""
Response Models - CompletionResponse and TokenUsage

This module contains the normalized result every provider returns,
whatever the backend's own response shape.

Anti-Patterns Avoided:
- Optional fields use Optional[T] with explicit None default
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TokenUsage(BaseModel):
    """
    Token usage statistics.

    Attributes:
        prompt_tokens: Number of tokens in the prompt
        completion_tokens: Number of tokens in the completion
        total_tokens: Total tokens used
    """

    prompt_tokens: int = Field(default=0, ge=0, description="Tokens in prompt")
    completion_tokens: int = Field(default=0, ge=0, description="Tokens in completion")
    total_tokens: int = Field(default=0, ge=0, description="Total tokens")


class CompletionResponse(BaseModel):
    """
    Normalized completion result.

    A response with empty text is never produced: providers raise
    EmptyResponseError instead, and the validator below rejects it as a
    last line.

    Attributes:
        content: Response text (non-empty).
        model: Model that actually answered.
        usage: Optional token usage triple.
        finish_reason: Optional backend stop reason.
    """

    content: str = Field(..., description="Response text")
    model: str = Field(..., min_length=1, description="Resolved model name")
    usage: Optional[TokenUsage] = Field(default=None, description="Token usage")
    finish_reason: Optional[str] = Field(
        default=None, description="Completion stop reason"
    )

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Reject empty or whitespace-only content."""
        if not v or not v.strip():
            raise ValueError("content must not be empty")
        return v
