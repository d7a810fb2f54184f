"""
Configuration for the program generation pipeline.

All tunables (model names, output budgets, retry bounds, timeouts, storage
and logging) are read from the environment or a local .env file.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Inference provider
    ANTHROPIC_API_KEY: Optional[str] = Field(default=None)
    MODEL_STANDARD: str = Field(default="claude-sonnet-4-20250514")
    MODEL_FAST: str = Field(default="claude-haiku-4-5-20251001")
    DEFAULT_MAX_OUTPUT_TOKENS: int = Field(default=8192, ge=1)
    LARGE_MAX_OUTPUT_TOKENS: int = Field(default=16384, ge=1)

    # Retry behaviour
    MODEL_CALL_RETRIES: int = Field(default=3, ge=0)
    RETRY_BASE_DELAY_SECONDS: float = Field(default=1.0, ge=0)
    MAX_PIPELINE_RETRIES: int = Field(default=1, ge=0)

    # Exercise selection
    # Estimated input tokens above which selection is split per session.
    SELECTOR_INPUT_TOKEN_BUDGET: int = Field(default=60000, ge=1)
    SESSION_SELECTION_CONCURRENCY: int = Field(default=4, ge=1)

    # Upper wall-clock bound for one generation request
    GENERATION_TIMEOUT_SECONDS: float = Field(default=120.0, gt=0)

    # Storage
    DATABASE_URL: str = Field(default="sqlite:///program_generator.db")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(default="text")
    ENVIRONMENT: str = Field(default="development")


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
