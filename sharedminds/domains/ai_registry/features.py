"""
Registry of product features that can be routed to an AI model.

Every route binds one of these keys to a model, and the model must provide
each of the feature's required capabilities.
"""

from enum import Enum
from typing import TYPE_CHECKING, Iterable, Mapping, Optional

from pydantic import BaseModel

if TYPE_CHECKING:
    from .models import AIProviderModel, ModelCapabilities


class Capability(str, Enum):
    CHAT = "chat"
    REASONING = "reasoning"
    VISION = "vision"
    SEARCH = "search"
    LONG_CONTEXT = "long_context"
    TOOLS = "tools"


class FeatureKey(str, Enum):
    AI_CHAT = "ai_chat"
    DRAFT_GENERATION = "draft_generation"
    PROJECT_SUMMARY = "project_summary"
    DEADLINE_ANALYSIS = "deadline_analysis"
    MIND_MESH_EXPLAIN = "mind_mesh_explain"
    TASKFLOW_ASSIST = "taskflow_assist"
    SPACES_MEAL_PLANNER = "spaces_meal_planner"
    SPACES_NOTES_ASSIST = "spaces_notes_assist"
    REALITY_CHECK_ASSIST = "reality_check_assist"
    OFFSHOOT_ANALYSIS = "offshoot_analysis"
    REALITY_CHECK_INITIAL = "reality_check_initial"
    REALITY_CHECK_SECONDARY = "reality_check_secondary"
    REALITY_CHECK_DETAILED = "reality_check_detailed"
    REALITY_CHECK_REFRAME = "reality_check_reframe"


class FeatureDefinition(BaseModel):
    key: str
    label: str
    description: str
    required_capabilities: tuple[Capability, ...] = (Capability.CHAT,)
    allowed_intents: Optional[tuple[str, ...]] = None


def _feature(
    key: FeatureKey,
    label: str,
    description: str,
    *capabilities: Capability,
    intents: Optional[tuple[str, ...]] = None,
) -> tuple[str, FeatureDefinition]:
    return key.value, FeatureDefinition(
        key=key.value,
        label=label,
        description=description,
        required_capabilities=(Capability.CHAT, *capabilities),
        allowed_intents=intents,
    )


FEATURE_REGISTRY: dict[str, FeatureDefinition] = dict(
    [
        _feature(FeatureKey.AI_CHAT, "AI Chat", "Conversational assistant"),
        _feature(
            FeatureKey.DRAFT_GENERATION,
            "Draft Generation",
            "Drafts notes, plans and messages",
            intents=("draft", "rewrite", "test"),
        ),
        _feature(
            FeatureKey.PROJECT_SUMMARY,
            "Project Summary",
            "Summarises a project and its tracks",
            Capability.LONG_CONTEXT,
            intents=("summarize", "test"),
        ),
        _feature(
            FeatureKey.DEADLINE_ANALYSIS,
            "Deadline Analysis",
            "Flags deadline risk across a roadmap",
            Capability.REASONING,
        ),
        _feature(
            FeatureKey.MIND_MESH_EXPLAIN,
            "Mind Mesh Explain",
            "Explains connections in the mind mesh",
            Capability.REASONING,
        ),
        _feature(
            FeatureKey.TASKFLOW_ASSIST, "Taskflow Assist", "Breaks work into next steps"
        ),
        _feature(
            FeatureKey.SPACES_MEAL_PLANNER,
            "Meal Planner",
            "Suggests meals for a household space",
        ),
        _feature(
            FeatureKey.SPACES_NOTES_ASSIST, "Notes Assist", "Helps tidy and extend notes"
        ),
        _feature(
            FeatureKey.REALITY_CHECK_ASSIST,
            "Reality Check Assist",
            "Guides a reality check conversation",
            Capability.REASONING,
        ),
        _feature(
            FeatureKey.OFFSHOOT_ANALYSIS,
            "Offshoot Analysis",
            "Assesses whether an idea is a distraction",
            Capability.REASONING,
        ),
        _feature(
            FeatureKey.REALITY_CHECK_INITIAL,
            "Reality Check: Initial",
            "First-pass feasibility check",
            Capability.REASONING,
        ),
        _feature(
            FeatureKey.REALITY_CHECK_SECONDARY,
            "Reality Check: Secondary",
            "Follow-up feasibility check",
            Capability.REASONING,
        ),
        _feature(
            FeatureKey.REALITY_CHECK_DETAILED,
            "Reality Check: Detailed",
            "Detailed feasibility report",
            Capability.REASONING,
            Capability.LONG_CONTEXT,
        ),
        _feature(
            FeatureKey.REALITY_CHECK_REFRAME,
            "Reality Check: Reframe",
            "Reframes a plan after a reality check",
            Capability.REASONING,
        ),
    ]
)


def get_feature(
    feature_key: str, registry: Mapping[str, FeatureDefinition] = FEATURE_REGISTRY
) -> Optional[FeatureDefinition]:
    return registry.get(str(getattr(feature_key, "value", feature_key)))


def missing_capabilities(
    capabilities: "ModelCapabilities", feature: FeatureDefinition
) -> list[Capability]:
    """Required capabilities the model does not have, in registry order."""
    return [
        cap
        for cap in feature.required_capabilities
        if getattr(capabilities, cap.value, False) is not True
    ]


def is_model_compatible(model: "AIProviderModel", feature: FeatureDefinition) -> bool:
    return not missing_capabilities(model.capabilities, feature)


def compatible_models(
    models: Iterable["AIProviderModel"], feature: FeatureDefinition
) -> list["AIProviderModel"]:
    """Enabled models that satisfy every capability the feature requires."""
    return [m for m in models if m.is_enabled and is_model_compatible(m, feature)]
