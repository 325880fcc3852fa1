"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Public URL of the dashboard - used in login links sent by the bot
    app_url: str = Field(default="http://localhost:3000", validation_alias="APP_URL")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    # Tagging providers
    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")
    anthropic_api_key: str = Field(default="", validation_alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(
        default="claude-3-haiku-20240307", validation_alias="ANTHROPIC_MODEL",
    )
    # Ordered provider chain, comma-separated (first available provider is tried first)
    tagging_providers_str: str = Field(
        default="openai,claude", validation_alias="TAGGING_PROVIDERS",
    )
    tagging_min_tags: int = Field(default=3, validation_alias="TAGGING_MIN_TAGS")
    tagging_max_tags: int = Field(default=5, validation_alias="TAGGING_MAX_TAGS")
    tagging_min_confidence: float = Field(
        default=0.6, validation_alias="TAGGING_MIN_CONFIDENCE",
    )
    tagging_timeout: float = Field(default=10.0, validation_alias="TAGGING_TIMEOUT")

    # Metadata extraction - Instagram oEmbed requires a Facebook app credential pair
    facebook_app_id: str = Field(default="", validation_alias="FACEBOOK_APP_ID")
    facebook_app_secret: str = Field(default="", validation_alias="FACEBOOK_APP_SECRET")
    scrape_timeout: float = Field(default=10.0, validation_alias="SCRAPE_TIMEOUT")

    # Telegram bot
    telegram_bot_token: str = Field(default="", validation_alias="TELEGRAM_BOT_TOKEN")
    telegram_webhook_secret: str = Field(
        default="", validation_alias="TELEGRAM_WEBHOOK_SECRET",
    )

    # Login tokens and sessions
    login_token_ttl_minutes: int = Field(
        default=10, validation_alias="LOGIN_TOKEN_TTL_MINUTES",
    )
    session_ttl_days: int = Field(default=7, validation_alias="SESSION_TTL_DAYS")

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def tagging_providers(self) -> list[str]:
        """Parse the comma-separated provider chain into an ordered list of names."""
        return [
            name.strip().lower()
            for name in self.tagging_providers_str.split(",")
            if name.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
