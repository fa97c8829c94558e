"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    # LLM Providers -- any subset may be empty
    ANTHROPIC_API_KEY: str = ""
    GEMINI_API_KEY: str = ""
    EURON_API_KEY: str = ""
    EURON_API_BASE: str = "https://api.euron.one/api/v1/euri"
    CLAUDE_MODEL: str = "anthropic/claude-sonnet-4-20250514"
    GEMINI_MODEL: str = "gemini/gemini-1.5-flash"
    EURON_MODEL: str = "openai/gpt-4.1-nano"
    PREFERRED_PROVIDER: str = "claude"
    LLM_TIMEOUT: int = 30
    LLM_MAX_TOKENS: int = 1000
    LLM_TEMPERATURE: float = 0.7

    # Context compaction
    MAX_RECENT_CHUNKS: int = 20
    MICRO_SUMMARY_INTERVAL_SECONDS: int = 5 * 60
    MICRO_SUMMARY_MIN_CHUNKS: int = 5
    SECTION_SUMMARY_INTERVAL_SECONDS: int = 30 * 60
    SECTION_SUMMARY_BATCH: int = 3

    # Condensed context windows
    CONTEXT_RECENT_WINDOW: int = 10
    CONTEXT_MICRO_WINDOW: int = 3

    # Session lifecycle
    SHORT_SESSION_MINUTES: int = 2
    END_SESSION_GRACE_SECONDS: float = 10.0
    DURATION_REFRESH_SECONDS: float = 60.0


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
