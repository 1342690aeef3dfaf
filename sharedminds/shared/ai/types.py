"""
Normalized request and response types shared by every provider adapter.
"""

from enum import Enum
from typing import Literal, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator


class ReasoningLevel(str, Enum):
    FAST = "fast"
    BALANCED = "balanced"
    DEEP = "deep"
    LONG_FORM = "long_form"


FinishReason = Literal["stop", "length", "tool_calls", "content_filter"]


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class TokenBudgets(BaseModel):
    max_input_tokens: Optional[int] = None
    max_output_tokens: Optional[int] = None


class NormalizedAIRequest(BaseModel):
    provider: str
    model_key: str
    intent: str
    feature_key: str
    messages: list[ChatMessage] = Field(default_factory=list)
    system_prompt: Optional[str] = None
    budgets: TokenBudgets = Field(default_factory=TokenBudgets)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    reasoning_level: Optional[ReasoningLevel] = None

    @field_validator("model_key")
    @classmethod
    def strip_model_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("model_key must not be empty")
        return v


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


class NormalizedAIResponse(BaseModel):
    text: str
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    finish_reason: FinishReason = "stop"
    latency_ms: int = 0
    provider: Optional[str] = None
    model_key: Optional[str] = None


class ReasoningParams(NamedTuple):
    """Provider request parameters a reasoning preset expands to."""

    max_tokens: Optional[int]
    temperature: Optional[float]
    max_completion_tokens: Optional[int]
    reasoning_effort: Optional[Literal["low", "medium", "high"]]
