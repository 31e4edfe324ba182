"""
Adapter registry.

Maps provider ids to adapter instances. Built-in adapters cover claude,
openai, mistral and groq; new backends are added by registering another
ProviderAdapter under its provider_id.

Resolution ignores the id for stub providers: anything marked stub is
served by the stub adapter, so a placeholder can never reach a real
backend even if one is registered under the same id.
"""

import logging

from llm_relay.adapters.base import ProviderAdapter, Unconfigured
from llm_relay.adapters.chat import GroqAdapter, MistralAdapter, OpenAIAdapter
from llm_relay.adapters.claude import ClaudeAdapter
from llm_relay.adapters.stub import StubAdapter
from llm_relay.registry.models import ProviderDescriptor

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Provider id to adapter lookup.

    Attributes:
        stub_adapter: Adapter used for every status=stub provider
    """

    def __init__(
        self,
        adapters: list[ProviderAdapter] | None = None,
        stub_adapter: ProviderAdapter | None = None,
    ) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}
        self.stub_adapter = stub_adapter or StubAdapter()
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter, provider_id: str | None = None) -> None:
        """
        Register an adapter, replacing any previous one for the same id.

        Args:
            adapter: The adapter instance.
            provider_id: Id to register under (default: adapter.provider_id).
        """
        key = provider_id or adapter.provider_id
        if not key:
            raise ValueError("Adapter has no provider_id")
        if key in self._adapters:
            logger.info(f"Replacing adapter for provider '{key}'")
        self._adapters[key] = adapter

    def resolve(self, descriptor: ProviderDescriptor) -> ProviderAdapter:
        """
        Find the adapter that serves a provider.

        Raises:
            Unconfigured: If no adapter is registered for a non-stub provider.
        """
        if descriptor.is_stub:
            return self.stub_adapter

        adapter = self._adapters.get(descriptor.id)
        if adapter is None:
            raise Unconfigured(
                f"No adapter registered for provider '{descriptor.id}'", descriptor.id
            )
        return adapter

    def registered_ids(self) -> list[str]:
        return list(self._adapters)


def default_adapters() -> list[ProviderAdapter]:
    return [ClaudeAdapter(), OpenAIAdapter(), MistralAdapter(), GroqAdapter()]


_registry_instance: AdapterRegistry | None = None


def get_adapter_registry() -> AdapterRegistry:
    """
    Get the global adapter registry with the built-in adapters.

    Returns:
        The singleton AdapterRegistry instance
    """
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = AdapterRegistry(default_adapters())
    return _registry_instance


def reset_adapter_registry() -> None:
    global _registry_instance
    _registry_instance = None
