"""
Provider adapters that execute normalized AI requests.

Each adapter owns provider-specific normalization (reasoning presets, message
layout, finish reasons) so route resolution stays provider-agnostic. Errors
are classified but never retried here; retry policy belongs to the caller.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

import anthropic
import openai
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from sharedminds.shared.ai.config import AIConfig
from sharedminds.shared.ai.credentials import CredentialProvider
from sharedminds.shared.ai.exceptions import (
    AIValidationException,
    ModelNotSupportedError,
    ProviderAPIError,
)
from sharedminds.shared.ai.reasoning import is_reasoning_family, resolve_reasoning_level
from sharedminds.shared.ai.types import (
    FinishReason,
    NormalizedAIRequest,
    NormalizedAIResponse,
    TokenUsage,
)

logger = logging.getLogger(__name__)

OPENAI_FINISH_REASONS: dict[str, FinishReason] = {
    "stop": "stop",
    "length": "length",
    "tool_calls": "tool_calls",
    "function_call": "tool_calls",
    "content_filter": "content_filter",
}

ANTHROPIC_FINISH_REASONS: dict[str, FinishReason] = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool_calls",
    "refusal": "content_filter",
}


def map_finish_reason(
    reason: Optional[str], table: dict[str, FinishReason] = OPENAI_FINISH_REASONS
) -> FinishReason:
    """Map a provider finish reason onto the normalized set, defaulting to stop."""
    if not reason:
        return "stop"
    return table.get(reason, "stop")


def is_retryable_status(status_code: Optional[int]) -> bool:
    return status_code is not None and (status_code in (408, 429) or status_code >= 500)


def _cap(value: Optional[int], ceiling: Optional[int]) -> Optional[int]:
    if value is None or ceiling is None:
        return value if value is not None else ceiling
    return min(value, ceiling)


class ProviderAdapter(ABC):
    """Executes a NormalizedAIRequest against one provider."""

    provider: str = ""

    def __init__(self, api_key: str, config: Optional[AIConfig] = None):
        self.api_key = api_key
        self.config = config or AIConfig.from_settings()

    async def generate(self, request: NormalizedAIRequest) -> NormalizedAIResponse:
        """
        Execute a request and return the normalized response.

        Raises:
            ModelNotSupportedError: If the request targets another provider
            ProviderAPIError: If the provider call fails
        """
        if request.provider.strip().lower() != self.provider:
            raise ModelNotSupportedError(
                request.provider,
                request.model_key,
                f"{self.provider} adapter cannot serve {request.provider} models",
            )
        if not request.messages:
            raise AIValidationException("At least one message is required")

        started = time.perf_counter()
        response = await self._generate(request)
        response.latency_ms = int((time.perf_counter() - started) * 1000)
        response.provider = self.provider
        response.model_key = request.model_key
        return response

    @abstractmethod
    async def _generate(self, request: NormalizedAIRequest) -> NormalizedAIResponse:
        pass

    def _classify_error(self, error: Exception) -> ProviderAPIError:
        """Convert an SDK exception into a tagged ProviderAPIError."""
        status_code = getattr(error, "status_code", None)
        message = getattr(error, "message", None) or str(error)
        # Timeouts and dropped connections carry no status and are transient
        connection_errors = (openai.APIConnectionError, anthropic.APIConnectionError)
        if isinstance(error, connection_errors):
            retryable = True
        else:
            retryable = is_retryable_status(status_code)
        logger.error(
            f"{self.provider} request failed (status={status_code}, "
            f"retryable={retryable}): {message}"
        )
        return ProviderAPIError(self.provider, status_code, message, retryable)


class OpenAIAdapter(ProviderAdapter):
    provider = "openai"
    base_url: Optional[str] = None

    def __init__(self, api_key: str, config: Optional[AIConfig] = None):
        super().__init__(api_key, config)
        self.client = AsyncOpenAI(
            api_key=api_key, base_url=self.base_url, **self.config.to_client_kwargs()
        )

    def build_params(self, request: NormalizedAIRequest) -> dict[str, Any]:
        """Chat completion parameters, with any reasoning preset expanded."""
        messages: list[dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.extend(m.model_dump() for m in request.messages)

        params: dict[str, Any] = {"model": request.model_key, "messages": messages}
        ceiling = request.budgets.max_output_tokens
        preset = resolve_reasoning_level(request.reasoning_level, request.model_key)

        if preset is not None and preset.max_completion_tokens is not None:
            params["max_completion_tokens"] = _cap(preset.max_completion_tokens, ceiling)
            params["reasoning_effort"] = preset.reasoning_effort
        elif preset is not None:
            params["max_tokens"] = _cap(preset.max_tokens, ceiling)
            params["temperature"] = preset.temperature
        elif is_reasoning_family(request.model_key):
            # Reasoning models reject max_tokens and custom temperatures
            limit = _cap(request.max_tokens, ceiling)
            if limit is not None:
                params["max_completion_tokens"] = limit
        else:
            limit = _cap(request.max_tokens, ceiling)
            if limit is not None:
                params["max_tokens"] = limit
            if request.temperature is not None:
                params["temperature"] = request.temperature
        return params

    async def _generate(self, request: NormalizedAIRequest) -> NormalizedAIResponse:
        params = self.build_params(request)
        try:
            completion = await self.client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            raise self._classify_error(e)

        choice = completion.choices[0] if completion.choices else None
        usage = completion.usage
        return NormalizedAIResponse(
            text=(choice.message.content or "") if choice else "",
            token_usage=TokenUsage(
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            finish_reason=map_finish_reason(choice.finish_reason if choice else None),
        )


class PerplexityAdapter(OpenAIAdapter):
    """Perplexity exposes an OpenAI-compatible chat completions endpoint."""

    provider = "perplexity"
    base_url = "https://api.perplexity.ai"


class AnthropicAdapter(ProviderAdapter):
    provider = "anthropic"

    def __init__(self, api_key: str, config: Optional[AIConfig] = None):
        super().__init__(api_key, config)
        self.client = AsyncAnthropic(api_key=api_key, **self.config.to_client_kwargs())

    def build_params(self, request: NormalizedAIRequest) -> dict[str, Any]:
        system_parts = [request.system_prompt] if request.system_prompt else []
        messages = []
        for message in request.messages:
            if message.role == "system":
                system_parts.append(message.content)
            else:
                messages.append(message.model_dump())

        ceiling = request.budgets.max_output_tokens
        preset = resolve_reasoning_level(request.reasoning_level, request.model_key)
        if preset is not None:
            max_tokens = preset.max_tokens or preset.max_completion_tokens
            temperature = preset.temperature
        else:
            max_tokens = request.max_tokens
            temperature = request.temperature

        params: dict[str, Any] = {
            "model": request.model_key,
            "messages": messages,
            "max_tokens": _cap(max_tokens, ceiling) or self.config.default_max_tokens,
        }
        if system_parts:
            params["system"] = "\n\n".join(system_parts)
        if temperature is not None:
            params["temperature"] = temperature
        return params

    async def _generate(self, request: NormalizedAIRequest) -> NormalizedAIResponse:
        params = self.build_params(request)
        try:
            message = await self.client.messages.create(**params)
        except anthropic.AnthropicError as e:
            raise self._classify_error(e)

        text = "".join(
            block.text for block in message.content if getattr(block, "type", "") == "text"
        )
        usage = message.usage
        return NormalizedAIResponse(
            text=text,
            token_usage=TokenUsage(
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                total_tokens=usage.input_tokens + usage.output_tokens,
            ),
            finish_reason=map_finish_reason(message.stop_reason, ANTHROPIC_FINISH_REASONS),
        )


PROVIDER_ADAPTERS: dict[str, type[ProviderAdapter]] = {
    OpenAIAdapter.provider: OpenAIAdapter,
    AnthropicAdapter.provider: AnthropicAdapter,
    PerplexityAdapter.provider: PerplexityAdapter,
}


def get_provider_adapter(
    provider: str,
    credentials: CredentialProvider,
    config: Optional[AIConfig] = None,
) -> ProviderAdapter:
    """
    Build the adapter for a provider slug.

    Raises:
        ModelNotSupportedError: If no adapter exists for the provider
        ProviderNotConfiguredError: If the provider's API key is missing
    """
    slug = provider.strip().lower()
    adapter_cls = PROVIDER_ADAPTERS.get(slug)
    if adapter_cls is None:
        raise ModelNotSupportedError(slug, None, "no adapter is available for this provider")
    return adapter_cls(credentials.get_api_key(slug), config)
