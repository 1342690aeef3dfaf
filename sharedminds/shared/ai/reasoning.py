from typing import Optional

from .types import ReasoningLevel, ReasoningParams

# Reasoning-family models take a completion budget plus an effort hint
REASONING_FAMILY_PRESETS: dict[ReasoningLevel, ReasoningParams] = {
    ReasoningLevel.FAST: ReasoningParams(None, None, 1200, "low"),
    ReasoningLevel.BALANCED: ReasoningParams(None, None, 2000, "medium"),
    ReasoningLevel.DEEP: ReasoningParams(None, None, 6000, "high"),
    ReasoningLevel.LONG_FORM: ReasoningParams(None, None, 12000, "medium"),
}

# Every other family takes max_tokens plus temperature
STANDARD_PRESETS: dict[ReasoningLevel, ReasoningParams] = {
    ReasoningLevel.FAST: ReasoningParams(800, 0.3, None, None),
    ReasoningLevel.BALANCED: ReasoningParams(1500, 0.7, None, None),
    ReasoningLevel.DEEP: ReasoningParams(3000, 0.7, None, None),
    ReasoningLevel.LONG_FORM: ReasoningParams(6000, 0.8, None, None),
}


def is_reasoning_family(model_key: str) -> bool:
    return model_key.strip().lower().startswith("gpt-5")


def resolve_reasoning_level(
    level: Optional[ReasoningLevel], model_key: str
) -> Optional[ReasoningParams]:
    """
    Expand a reasoning preset into provider request parameters.

    Returns None when no preset is set, in which case the caller's own
    max_tokens and temperature apply.
    """
    if level is None:
        return None
    presets = REASONING_FAMILY_PRESETS if is_reasoning_family(model_key) else STANDARD_PRESETS
    return presets[ReasoningLevel(level)]
