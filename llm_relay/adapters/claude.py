"""
Claude adapter (Anthropic Messages API).
"""

import logging
import time

import anthropic

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


class ClaudeAdapter(ProviderAdapter):
    """
    Dispatch to Anthropic's Messages API.

    The system prompt is a top-level parameter rather than a message,
    and the completion comes back as a list of content blocks.
    """

    provider_id = "claude"

    def __init__(self, clients: ProviderClients | None = None) -> None:
        self._clients = clients

    @property
    def clients(self) -> ProviderClients:
        return self._clients or get_clients()

    async def send(
        self,
        request: GenerationRequest,
        descriptor: ProviderDescriptor,
    ) -> AdapterResponse:
        settings = get_settings()
        client = self.clients.claude
        model = self.resolve_model(request, descriptor)

        kwargs = {
            "model": model,
            "max_tokens": request.max_tokens or settings.default_max_tokens,
            "temperature": (
                request.temperature
                if request.temperature is not None
                else settings.default_temperature
            ),
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt

        start_time = time.perf_counter()
        try:
            response = await client.messages.create(**kwargs)
        except anthropic.APIError as e:
            raise translate_sdk_error(anthropic, e, self.provider_id) from e

        latency_ms = (time.perf_counter() - start_time) * 1000

        text = "".join(
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
        if not text:
            raise BackendError("claude returned an empty completion", self.provider_id)

        logger.info(f"claude completion: model={model}, latency={latency_ms:.0f}ms")

        return AdapterResponse(
            content=text,
            model=model,
            latency_ms=latency_ms,
        )
