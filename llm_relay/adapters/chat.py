"""
Chat-completions adapters: OpenAI, Mistral and Groq.

All three backends speak the OpenAI chat-completions protocol, so they
share one request/response translation and differ only in which client
they use and which SDK's exception classes they translate.
"""

import logging
import time
from abc import abstractmethod
from typing import Any

import groq
import openai

from llm_relay.adapters.base import (
    AdapterResponse,
    BackendError,
    GenerationRequest,
    ProviderAdapter,
    translate_sdk_error,
)
from llm_relay.adapters.clients import ProviderClients, get_clients
from llm_relay.config import get_settings
from llm_relay.registry.models import ProviderDescriptor

logger = logging.getLogger(__name__)


class ChatCompletionsAdapter(ProviderAdapter):
    """
    Base adapter for OpenAI-compatible chat-completions backends.

    Subclasses set provider_id, sdk, and implement _client().
    """

    sdk: Any = openai

    def __init__(self, clients: ProviderClients | None = None) -> None:
        self._clients = clients

    @property
    def clients(self) -> ProviderClients:
        return self._clients or get_clients()

    @abstractmethod
    def _client(self):
        """The SDK client for this backend."""

    async def send(
        self,
        request: GenerationRequest,
        descriptor: ProviderDescriptor,
    ) -> AdapterResponse:
        settings = get_settings()
        client = self._client()
        model = self.resolve_model(request, descriptor)
        start_time = time.perf_counter()

        try:
            response = await client.chat.completions.create(
                model=model,
                messages=self.build_messages(request),
                temperature=(
                    request.temperature
                    if request.temperature is not None
                    else settings.default_temperature
                ),
                max_tokens=request.max_tokens or settings.default_max_tokens,
            )
        except self.sdk.APIError as e:
            raise translate_sdk_error(self.sdk, e, self.provider_id) from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        if not response.choices or not response.choices[0].message.content:
            raise BackendError(f"{self.provider_id} returned an empty completion", self.provider_id)

        logger.info(
            f"{self.provider_id} completion: model={model}, latency={latency_ms:.0f}ms"
        )

        return AdapterResponse(
            content=response.choices[0].message.content,
            model=model,
            latency_ms=latency_ms,
        )


class OpenAIAdapter(ChatCompletionsAdapter):
    provider_id = "openai"
    sdk = openai

    def _client(self):
        return self.clients.openai


class MistralAdapter(ChatCompletionsAdapter):
    """Mistral through its OpenAI-compatible endpoint."""

    provider_id = "mistral"
    sdk = openai

    def _client(self):
        return self.clients.mistral


class GroqAdapter(ChatCompletionsAdapter):
    """Groq-hosted open models (Llama) via the Groq SDK."""

    provider_id = "groq"
    sdk = groq

    def _client(self):
        return self.clients.groq
