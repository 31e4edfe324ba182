"""
Lazy-initialized provider SDK clients.

Clients are created on first use so that a provider without an API key
never fails at startup; it fails with Unconfigured only when called.

SDK-level retries are disabled. A provider call is a single attempt, and
the dispatcher's timeout bounds it; trying again is the dispatcher's job,
and it does so against a different provider.
"""

import logging

from anthropic import AsyncAnthropic
from groq import AsyncGroq
from openai import AsyncOpenAI

from llm_relay.adapters.base import Unconfigured
from llm_relay.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ProviderClients:
    """
    Lazy-initialized async SDK clients, one per backend.

    Uses async clients (AsyncAnthropic, AsyncOpenAI, AsyncGroq) so that
    concurrent generation requests never block each other.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._claude: AsyncAnthropic | None = None
        self._openai: AsyncOpenAI | None = None
        self._mistral: AsyncOpenAI | None = None
        self._groq: AsyncGroq | None = None

    def _require_key(self, provider_id: str) -> str:
        key = self._settings.api_key_for(provider_id)
        if key is None:
            raise Unconfigured(
                f"{provider_id.upper()}_API_KEY is not configured", provider_id
            )
        return key.get_secret_value()

    @property
    def claude(self) -> AsyncAnthropic:
        """
        Get Anthropic client (lazy initialization).

        Raises:
            Unconfigured: If CLAUDE_API_KEY is not configured.
        """
        if self._claude is None:
            self._claude = AsyncAnthropic(
                api_key=self._require_key("claude"),
                max_retries=0,
                timeout=self._settings.dispatch_timeout_seconds,
            )
            logger.debug("Initialized Anthropic client")
        return self._claude

    @property
    def openai(self) -> AsyncOpenAI:
        """
        Get OpenAI client (lazy initialization).

        Raises:
            Unconfigured: If OPENAI_API_KEY is not configured.
        """
        if self._openai is None:
            self._openai = AsyncOpenAI(
                api_key=self._require_key("openai"),
                max_retries=0,
                timeout=self._settings.dispatch_timeout_seconds,
            )
            logger.debug("Initialized OpenAI client")
        return self._openai

    @property
    def mistral(self) -> AsyncOpenAI:
        """
        Get Mistral client (lazy initialization).

        Mistral exposes an OpenAI-compatible API, so the OpenAI SDK is
        pointed at its base URL.

        Raises:
            Unconfigured: If MISTRAL_API_KEY is not configured.
        """
        if self._mistral is None:
            self._mistral = AsyncOpenAI(
                api_key=self._require_key("mistral"),
                base_url=self._settings.mistral_base_url,
                max_retries=0,
                timeout=self._settings.dispatch_timeout_seconds,
            )
            logger.debug("Initialized Mistral client")
        return self._mistral

    @property
    def groq(self) -> AsyncGroq:
        """
        Get Groq client (lazy initialization).

        Raises:
            Unconfigured: If GROQ_API_KEY is not configured.
        """
        if self._groq is None:
            self._groq = AsyncGroq(
                api_key=self._require_key("groq"),
                max_retries=0,
                timeout=self._settings.dispatch_timeout_seconds,
            )
            logger.debug("Initialized Groq client")
        return self._groq


_clients: ProviderClients | None = None


def get_clients() -> ProviderClients:
    """
    Get the global provider clients instance.

    Uses lazy initialization to create clients only when first needed.

    Returns:
        The singleton ProviderClients instance.
    """
    global _clients
    if _clients is None:
        _clients = ProviderClients()
    return _clients


def reset_clients() -> None:
    """Drop cached clients, e.g. after API keys change in tests."""
    global _clients
    _clients = None
