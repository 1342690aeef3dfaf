"""
AI configuration settings and constants.
"""

from dataclasses import dataclass

from sharedminds.core.settings import Settings, settings


@dataclass
class AIConfig:
    """Configuration shared by provider SDK clients."""

    timeout: int = 60
    max_retries: int = 0
    default_temperature: float = 0.7
    default_max_tokens: int = 1024

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "AIConfig":
        """Create AIConfig from application settings."""
        source = source or settings
        return cls(
            timeout=source.AI_REQUEST_TIMEOUT,
            max_retries=source.AI_MAX_RETRIES,
        )

    def to_client_kwargs(self) -> dict[str, int]:
        """Convert to SDK client kwargs."""
        return {
            "timeout": self.timeout,
            "max_retries": self.max_retries,
        }
