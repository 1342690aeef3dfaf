from typing import Optional

from pydantic import BaseModel, Field

from sharedminds.domains.ai_registry.models import SurfaceType
from sharedminds.shared.ai.types import ChatMessage, TokenBudgets


class GenerateRequest(BaseModel):
    messages: list[ChatMessage] = Field(..., min_length=1)
    intent: Optional[str] = None
    surface_type: Optional[SurfaceType] = None
    master_project_id: Optional[str] = None
    system_prompt: Optional[str] = None
    temperature: Optional[float] = Field(None, ge=0, le=2)
    max_tokens: Optional[int] = Field(None, gt=0)


class RouteResolution(BaseModel):
    feature_key: str
    route_id: str
    provider: str
    model_key: str
    specificity: int
    priority: int
    is_fallback: bool
    budgets: TokenBudgets
