"""
LLM Relay Configuration Module

This module manages application settings and environment variables using
pydantic-settings for type-safe configuration management.

Environment variables are loaded from .env file or system environment.
All provider API keys use SecretStr to prevent accidental logging.
"""

from functools import lru_cache
from typing import Literal
import logging
import sys

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Pydantic Settings automatically reads from:
    1. Environment variables
    2. .env file in working directory
    3. Default values defined here

    Every provider key is optional. A missing key does not stop the service
    from starting; it only makes that provider ineligible for routing.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    claude_api_key: SecretStr | None = Field(
        default=None, description="Anthropic API key for the Claude provider"
    )

    openai_api_key: SecretStr | None = Field(
        default=None, description="OpenAI API key"
    )

    mistral_api_key: SecretStr | None = Field(
        default=None, description="Mistral API key"
    )

    groq_api_key: SecretStr | None = Field(
        default=None, description="Groq API key for hosted Llama inference"
    )

    mistral_base_url: str = Field(
        default="https://api.mistral.ai/v1",
        description="OpenAI-compatible endpoint for Mistral",
    )

    routing_config_path: str = Field(
        default="config/ai-routing.json",
        description="JSON file holding the persisted provider routing table",
    )

    dispatch_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Upper bound for a single provider call before falling back",
    )

    max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Maximum provider calls per request (default: every candidate)",
    )

    default_temperature: float = Field(
        default=0.7, ge=0.0, le=2.0, description="Sampling temperature when unset"
    )

    default_max_tokens: int = Field(
        default=1000, gt=0, description="Max output tokens when unset"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Application log level"
    )

    host: str = Field(default="0.0.0.0", description="Server bind host")

    port: int = Field(default=8000, description="Server bind port")

    debug: bool = Field(default=False, description="Enable debug mode")

    def api_key_for(self, provider_id: str) -> SecretStr | None:
        """
        Look up the API key configured for a provider.

        Keys follow the ``<provider_id>_API_KEY`` naming convention. Unknown
        provider ids have no key.

        Args:
            provider_id: Provider identifier (e.g. "claude").

        Returns:
            The secret key, or None when not configured or empty.
        """
        key = getattr(self, f"{provider_id}_api_key", None)
        if not isinstance(key, SecretStr) or not key.get_secret_value():
            return None
        return key

    def has_credentials(self, provider_id: str) -> bool:
        """Whether a non-empty API key is configured for the provider."""
        return self.api_key_for(provider_id) is not None


@lru_cache
def get_settings() -> Settings:
    """
    Returns cached settings instance.

    Using lru_cache ensures settings are loaded once and reused,
    avoiding repeated file reads and environment parsing.

    Returns:
        Settings: The application settings singleton.
    """
    return Settings()


def configure_logging(settings: Settings) -> None:
    """
    Configure application logging based on settings.

    Sets up structured logging with timestamps and reduces noise
    from the provider SDKs and their HTTP libraries.

    Args:
        settings: The application settings instance.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("groq").setLevel(logging.WARNING)
