"""
AI-related exceptions for provider adapters and model test invocation.
"""

from typing import Optional


class AIException(Exception):
    """Base exception for AI-related errors."""

    pass


class ProviderNotConfiguredError(AIException):
    """Raised when a provider's credential is missing from the environment."""

    def __init__(self, provider: str, env_var: str) -> None:
        self.provider = provider
        self.env_var = env_var
        super().__init__(
            f"Provider '{provider}' is not configured: set {env_var} to enable it"
        )


class ModelNotSupportedError(AIException):
    """Raised when a request cannot be served by the selected adapter."""

    def __init__(self, provider: str, model_key: Optional[str], reason: str) -> None:
        self.provider = provider
        self.model_key = model_key
        self.reason = reason
        target = f"{provider}/{model_key}" if model_key else provider
        super().__init__(f"Model not supported ({target}): {reason}")


class ProviderAPIError(AIException):
    """Raised when the upstream provider rejects or fails a request."""

    def __init__(
        self,
        provider: str,
        status_code: Optional[int],
        message: str,
        retryable: bool,
    ) -> None:
        self.provider = provider
        self.status_code = status_code
        self.retryable = retryable
        status_text = f" [{status_code}]" if status_code else ""
        super().__init__(f"{provider} API error{status_text}: {message}")


class AIValidationException(AIException):
    """Raised when a request or response fails validation."""

    pass
