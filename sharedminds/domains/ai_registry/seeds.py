"""Default provider and model catalog for a fresh installation."""

from typing import Any

DEFAULT_PROVIDERS: list[dict[str, Any]] = [
    {
        "name": "anthropic",
        "display_name": "Anthropic",
        "is_enabled": True,
        "supports_tools": True,
        "supports_streaming": True,
    },
    {
        "name": "openai",
        "display_name": "OpenAI",
        "is_enabled": True,
        "supports_tools": True,
        "supports_streaming": True,
    },
    {
        "name": "perplexity",
        "display_name": "Perplexity",
        "is_enabled": False,
        "supports_tools": False,
        "supports_streaming": True,
    },
]

# (provider name, model row)
DEFAULT_MODELS: list[tuple[str, dict[str, Any]]] = [
    (
        "anthropic",
        {
            "model_key": "claude-3-5-sonnet-20241022",
            "display_name": "Claude 3.5 Sonnet",
            "capabilities": {
                "chat": True,
                "reasoning": True,
                "vision": True,
                "search": False,
                "long_context": True,
                "tools": True,
            },
            "context_window_tokens": 200000,
            "max_output_tokens": 8192,
            "cost_input_per_1m": 3.0,
            "cost_output_per_1m": 15.0,
            "is_enabled": True,
        },
    ),
    (
        "anthropic",
        {
            "model_key": "claude-3-5-haiku-20241022",
            "display_name": "Claude 3.5 Haiku",
            "capabilities": {
                "chat": True,
                "reasoning": False,
                "vision": True,
                "search": False,
                "long_context": False,
                "tools": True,
            },
            "context_window_tokens": 200000,
            "max_output_tokens": 8192,
            "cost_input_per_1m": 1.0,
            "cost_output_per_1m": 5.0,
            "is_enabled": True,
        },
    ),
    (
        "openai",
        {
            "model_key": "gpt-4.1-mini",
            "display_name": "GPT-4.1 Mini",
            "capabilities": {
                "chat": True,
                "reasoning": True,
                "vision": False,
                "search": False,
                "long_context": True,
                "tools": True,
            },
            "context_window_tokens": 128000,
            "max_output_tokens": 16384,
            "cost_input_per_1m": 0.15,
            "cost_output_per_1m": 0.60,
            "is_enabled": True,
        },
    ),
    (
        "openai",
        {
            "model_key": "gpt-4o",
            "display_name": "GPT-4o",
            "capabilities": {
                "chat": True,
                "reasoning": True,
                "vision": True,
                "search": False,
                "long_context": True,
                "tools": True,
            },
            "context_window_tokens": 128000,
            "max_output_tokens": 16384,
            "cost_input_per_1m": 2.50,
            "cost_output_per_1m": 10.0,
            "is_enabled": True,
        },
    ),
]
