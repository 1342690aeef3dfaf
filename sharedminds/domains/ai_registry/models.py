import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from sharedminds.shared.ai.types import ReasoningLevel

from .features import FeatureKey

PROVIDER_SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class SurfaceType(str, Enum):
    PROJECT = "project"
    PERSONAL = "personal"
    SHARED = "shared"


def _strip_model_key(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("model_key must not be empty")
    return v


class ModelCapabilities(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    chat: bool = False
    reasoning: bool = False
    vision: bool = False
    search: bool = False
    long_context: bool = Field(
        False, validation_alias=AliasChoices("long_context", "longContext")
    )
    tools: bool = False


class RouteConstraints(BaseModel):
    """Per-route overrides. Stored snake_case; camelCase is accepted on input."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    max_context_tokens: Optional[int] = Field(
        None,
        gt=0,
        validation_alias=AliasChoices("max_context_tokens", "maxContextTokens"),
    )
    max_output_tokens: Optional[int] = Field(
        None,
        gt=0,
        validation_alias=AliasChoices("max_output_tokens", "maxOutputTokens"),
    )
    allowed_intents: Optional[list[str]] = Field(
        None, validation_alias=AliasChoices("allowed_intents", "allowedIntents")
    )
    disallowed_intents: Optional[list[str]] = Field(
        None, validation_alias=AliasChoices("disallowed_intents", "disallowedIntents")
    )

    def permits_intent(self, intent: Optional[str]) -> bool:
        """Disallowed intents win over allowed ones."""
        if intent is None:
            return True
        if self.disallowed_intents and intent in self.disallowed_intents:
            return False
        if self.allowed_intents:
            return intent in self.allowed_intents
        return True

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class AIProvider(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    name: str
    display_name: str
    is_enabled: bool = True
    supports_tools: bool = False
    supports_streaming: bool = True
    created_at: Optional[datetime] = None


class AIProviderModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    provider_id: str
    model_key: str
    display_name: str
    capabilities: ModelCapabilities = Field(default_factory=ModelCapabilities)
    context_window_tokens: Optional[int] = None
    max_output_tokens: Optional[int] = None
    cost_input_per_1m: Optional[float] = None
    cost_output_per_1m: Optional[float] = None
    reasoning_level: Optional[ReasoningLevel] = None
    is_enabled: bool = True
    created_at: Optional[datetime] = None

    @field_validator("model_key")
    @classmethod
    def strip_model_key(cls, v: str) -> str:
        return _strip_model_key(v)  # type: ignore[return-value]

    @field_validator("capabilities", mode="before")
    @classmethod
    def default_capabilities(cls, v: Any) -> Any:
        return v or {}


class AIFeatureRoute(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str
    feature_key: str
    provider_model_id: str
    surface_type: Optional[SurfaceType] = None
    master_project_id: Optional[str] = None
    priority: int = 0
    is_fallback: bool = False
    constraints: RouteConstraints = Field(default_factory=RouteConstraints)
    is_enabled: bool = True
    created_at: Optional[datetime] = None

    @field_validator("constraints", mode="before")
    @classmethod
    def default_constraints(cls, v: Any) -> Any:
        return v or {}


# Request models


class ProviderCreate(BaseModel):
    name: str
    display_name: str = Field(..., min_length=1)
    is_enabled: bool = True
    supports_tools: bool = False
    supports_streaming: bool = True

    @field_validator("name")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        v = v.strip().lower()
        if not PROVIDER_SLUG_PATTERN.match(v):
            raise ValueError(
                "name must be a lowercase slug of letters, digits, '-' or '_'"
            )
        return v


class ProviderUpdate(BaseModel):
    display_name: Optional[str] = Field(None, min_length=1)
    supports_tools: Optional[bool] = None
    supports_streaming: Optional[bool] = None


class ModelCreate(BaseModel):
    provider_id: str
    model_key: str
    display_name: str = Field(..., min_length=1)
    capabilities: ModelCapabilities = Field(default_factory=ModelCapabilities)
    context_window_tokens: Optional[int] = Field(None, gt=0)
    max_output_tokens: Optional[int] = Field(None, gt=0)
    cost_input_per_1m: Optional[float] = Field(None, ge=0)
    cost_output_per_1m: Optional[float] = Field(None, ge=0)
    reasoning_level: Optional[ReasoningLevel] = None
    is_enabled: bool = True

    @field_validator("model_key")
    @classmethod
    def strip_model_key(cls, v: str) -> str:
        return _strip_model_key(v)  # type: ignore[return-value]


class ModelUpdate(BaseModel):
    model_key: Optional[str] = None
    display_name: Optional[str] = Field(None, min_length=1)
    capabilities: Optional[ModelCapabilities] = None
    context_window_tokens: Optional[int] = Field(None, gt=0)
    max_output_tokens: Optional[int] = Field(None, gt=0)
    cost_input_per_1m: Optional[float] = Field(None, ge=0)
    cost_output_per_1m: Optional[float] = Field(None, ge=0)
    reasoning_level: Optional[ReasoningLevel] = None

    @field_validator("model_key")
    @classmethod
    def strip_model_key(cls, v: Optional[str]) -> Optional[str]:
        return _strip_model_key(v)


class RouteCreate(BaseModel):
    feature_key: FeatureKey
    provider_model_id: str
    surface_type: Optional[SurfaceType] = None
    master_project_id: Optional[str] = None
    priority: int = 100
    is_fallback: bool = False
    constraints: Optional[RouteConstraints] = None
    is_enabled: bool = True


class RouteUpdate(BaseModel):
    provider_model_id: Optional[str] = None
    surface_type: Optional[SurfaceType] = None
    master_project_id: Optional[str] = None
    priority: Optional[int] = None
    is_fallback: Optional[bool] = None
    constraints: Optional[RouteConstraints] = None


class SetEnabledRequest(BaseModel):
    is_enabled: bool
    confirmed: bool = False


class DisableImpact(BaseModel):
    model_count: int = 0
    route_count: int = 0
    message: str


class CompatibleModel(BaseModel):
    model: AIProviderModel
    provider: AIProvider
