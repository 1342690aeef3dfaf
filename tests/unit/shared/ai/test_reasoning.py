"""
Tests for reasoning preset expansion in shared/ai/reasoning.py
"""

import pytest

from sharedminds.shared.ai.reasoning import is_reasoning_family, resolve_reasoning_level
from sharedminds.shared.ai.types import ReasoningLevel


@pytest.mark.parametrize(
    "level,tokens,effort",
    [
        (ReasoningLevel.FAST, 1200, "low"),
        (ReasoningLevel.BALANCED, 2000, "medium"),
        (ReasoningLevel.DEEP, 6000, "high"),
        (ReasoningLevel.LONG_FORM, 12000, "medium"),
    ],
)
def test_reasoning_family_presets(level: ReasoningLevel, tokens: int, effort: str) -> None:
    params = resolve_reasoning_level(level, "gpt-5-mini")
    assert params is not None
    assert params.max_completion_tokens == tokens
    assert params.reasoning_effort == effort
    assert params.max_tokens is None
    assert params.temperature is None


@pytest.mark.parametrize(
    "level,tokens,temperature",
    [
        (ReasoningLevel.FAST, 800, 0.3),
        (ReasoningLevel.BALANCED, 1500, 0.7),
        (ReasoningLevel.DEEP, 3000, 0.7),
        (ReasoningLevel.LONG_FORM, 6000, 0.8),
    ],
)
def test_standard_presets(level: ReasoningLevel, tokens: int, temperature: float) -> None:
    params = resolve_reasoning_level(level, "claude-3-5-sonnet-20241022")
    assert params is not None
    assert params.max_tokens == tokens
    assert params.temperature == temperature
    assert params.max_completion_tokens is None


def test_no_level_means_no_preset() -> None:
    assert resolve_reasoning_level(None, "gpt-5") is None


def test_reasoning_family_detection_is_case_insensitive() -> None:
    assert is_reasoning_family(" GPT-5-Turbo ")
    assert not is_reasoning_family("gpt-4o")
