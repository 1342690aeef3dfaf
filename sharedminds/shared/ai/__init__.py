from sharedminds.shared.ai.client import (
    AnthropicAdapter,
    OpenAIAdapter,
    PerplexityAdapter,
    ProviderAdapter,
    get_provider_adapter,
)
from sharedminds.shared.ai.config import AIConfig
from sharedminds.shared.ai.credentials import CredentialProvider
from sharedminds.shared.ai.exceptions import (
    AIException,
    AIValidationException,
    ModelNotSupportedError,
    ProviderAPIError,
    ProviderNotConfiguredError,
)
from sharedminds.shared.ai.types import (
    NormalizedAIRequest,
    NormalizedAIResponse,
    ReasoningLevel,
)

__all__ = [
    "AIConfig",
    "AIException",
    "AIValidationException",
    "AnthropicAdapter",
    "CredentialProvider",
    "ModelNotSupportedError",
    "NormalizedAIRequest",
    "NormalizedAIResponse",
    "OpenAIAdapter",
    "PerplexityAdapter",
    "ProviderAPIError",
    "ProviderAdapter",
    "ProviderNotConfiguredError",
    "ReasoningLevel",
    "get_provider_adapter",
]
