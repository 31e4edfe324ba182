"""
Stub adapter for placeholder providers.

A provider marked status=stub has no real backend. It answers with a fixed
notice so that callers get a clear degraded-mode message instead of an
error when nothing else is available. It never touches the network.
"""

import logging

from llm_relay.adapters.base import AdapterResponse, GenerationRequest, ProviderAdapter
from llm_relay.registry.models import ProviderDescriptor

logger = logging.getLogger(__name__)

STUB_NOTICE = (
    "{name} is currently unavailable. This is a placeholder response; "
    "content generation will resume when a provider comes back online."
)


class StubAdapter(ProviderAdapter):
    provider_id = "stub"

    async def send(
        self,
        request: GenerationRequest,
        descriptor: ProviderDescriptor,
    ) -> AdapterResponse:
        logger.warning(f"Serving placeholder response from stub provider '{descriptor.id}'")
        model = descriptor.supported_models[0] if descriptor.supported_models else "stub"
        return AdapterResponse(
            content=STUB_NOTICE.format(name=descriptor.display_name),
            model=model,
            latency_ms=0.0,
        )
