"""Configuration settings for the ledger posting engine."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

AIProvider = Literal["gemini", "claude", "openai", "none"]


class FlatSettings(BaseSettings):
    """Flat settings read from environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///ledger_posting.db", validation_alias="DATABASE_URL"
    )
    database_echo: bool = Field(default=False, validation_alias="DATABASE_ECHO")

    # AI provider selection; "none" disables AI-assisted generation entirely
    ai_provider: AIProvider = Field(default="gemini", validation_alias="AI_PROVIDER")

    # LLM API Keys (all optional, a missing key disables that provider)
    google_api_key: SecretStr | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    anthropic_api_key: SecretStr | None = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    openai_api_key: SecretStr | None = Field(default=None, validation_alias="OPENAI_API_KEY")

    # Model selections
    gemini_model: str = Field(
        default="gemini-2.5-flash-lite", validation_alias="GEMINI_MODEL"
    )
    claude_model: str = Field(default="claude-haiku-4-5", validation_alias="CLAUDE_MODEL")
    gpt_model: str = Field(default="gpt-5-nano", validation_alias="GPT_MODEL")

    # LLM parameters
    llm_max_tokens: int = Field(default=2048, validation_alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.0, validation_alias="LLM_TEMPERATURE")

    # Generation behaviour
    prefer_ai: bool = Field(default=True, validation_alias="AI_PREFERRED")
    ai_max_retries: int = Field(default=2, ge=0, validation_alias="AI_MAX_RETRIES")
    ai_timeout_ms: int = Field(default=5000, gt=0, validation_alias="AI_TIMEOUT_MS")
    ai_retry_backoff_ms: int = Field(
        default=250, ge=0, validation_alias="AI_RETRY_BACKOFF_MS"
    )
    batch_delay_ms: int = Field(default=100, ge=0, validation_alias="BATCH_DELAY_MS")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> FlatSettings:
    """Get cached settings instance."""
    return FlatSettings()
