import os
from typing import Mapping

from sharedminds.core.settings import Settings

from .exceptions import ProviderNotConfiguredError


def credential_env_var(provider: str) -> str:
    """Environment variable holding a provider's API key, e.g. OPENAI_API_KEY."""
    return f"{provider.strip().upper().replace('-', '_')}_API_KEY"


class CredentialProvider:
    """
    Resolves provider API keys by their per-provider environment variable.

    Constructed explicitly and handed to whoever builds adapters; a missing
    key is a configuration error, never a silent fallback.
    """

    def __init__(self, values: Mapping[str, str | None]):
        self._values = dict(values)

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialProvider":
        values: dict[str, str | None] = {
            key: value
            for key, value in os.environ.items()
            if key.endswith("_API_KEY")
        }
        values.update(
            {
                "OPENAI_API_KEY": settings.OPENAI_API_KEY,
                "ANTHROPIC_API_KEY": settings.ANTHROPIC_API_KEY,
                "PERPLEXITY_API_KEY": settings.PERPLEXITY_API_KEY,
            }
        )
        return cls(values)

    def is_configured(self, provider: str) -> bool:
        return bool((self._values.get(credential_env_var(provider)) or "").strip())

    def get_api_key(self, provider: str) -> str:
        env_var = credential_env_var(provider)
        value = (self._values.get(env_var) or "").strip()
        if not value:
            raise ProviderNotConfiguredError(provider, env_var)
        return value
