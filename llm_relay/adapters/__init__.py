"""
Adapters module: one adapter per LLM backend behind a uniform contract.

Key exports:
- GenerationRequest / AdapterResponse: generic request and response shapes
- AdapterError and subclasses: Unconfigured, RateLimited, AdapterTimeout, BackendError
- ProviderAdapter: abstract base for adapters
- ClaudeAdapter, OpenAIAdapter, MistralAdapter, GroqAdapter, StubAdapter
- AdapterRegistry / get_adapter_registry(): provider id to adapter lookup
- ProviderClients / get_clients(): lazy SDK clients
"""

from llm_relay.adapters.base import (
    AdapterError,
    AdapterResponse,
    AdapterTimeout,
    BackendError,
    GenerationRequest,
    ProviderAdapter,
    RateLimited,
    Unconfigured,
    translate_sdk_error,
)
from llm_relay.adapters.chat import (
    ChatCompletionsAdapter,
    GroqAdapter,
    MistralAdapter,
    OpenAIAdapter,
)
from llm_relay.adapters.claude import ClaudeAdapter
from llm_relay.adapters.clients import ProviderClients, get_clients, reset_clients
from llm_relay.adapters.registry import (
    AdapterRegistry,
    default_adapters,
    get_adapter_registry,
    reset_adapter_registry,
)
from llm_relay.adapters.stub import StubAdapter

__all__ = [
    # Contract
    "GenerationRequest",
    "AdapterResponse",
    "ProviderAdapter",
    "translate_sdk_error",
    # Failures
    "AdapterError",
    "Unconfigured",
    "RateLimited",
    "AdapterTimeout",
    "BackendError",
    # Adapters
    "ChatCompletionsAdapter",
    "ClaudeAdapter",
    "OpenAIAdapter",
    "MistralAdapter",
    "GroqAdapter",
    "StubAdapter",
    # Registry and clients
    "AdapterRegistry",
    "default_adapters",
    "get_adapter_registry",
    "reset_adapter_registry",
    "ProviderClients",
    "get_clients",
    "reset_clients",
]
