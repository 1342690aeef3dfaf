from sharedminds.core.settings import settings

from .config import AIConfig
from .credentials import CredentialProvider


def get_credentials() -> CredentialProvider:
    return CredentialProvider.from_settings(settings)


def get_ai_config() -> AIConfig:
    return AIConfig.from_settings(settings)
