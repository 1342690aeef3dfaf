from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase configuration
    SUPABASE_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    JWT_SECRET: str | None = None

    # Application URLs
    FRONTEND_URL: str | None = None

    LOG_LEVEL: str = "INFO"

    # AI provider credentials, one variable per provider slug
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None
    PERPLEXITY_API_KEY: str | None = None

    # Provider client behaviour. Retries stay with the caller.
    AI_REQUEST_TIMEOUT: int = 60
    AI_MAX_RETRIES: int = 0

    # Entity permission resolution feature flags
    ENABLE_ENTITY_GRANTS: bool = True
    ENABLE_CREATOR_RIGHTS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
