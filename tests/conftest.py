"""
Pytest configuration and shared fixtures.

Provides descriptor builders, scripted fake adapters, and environment
setup for the LLM Relay test suite.

IMPORTANT: Environment variables must be set BEFORE importing llm_relay
modules that use pydantic-settings, as Settings validates on import.
"""

import asyncio
import os
import sys

# Set test environment variables before importing llm_relay modules
os.environ["CLAUDE_API_KEY"] = "test-key-not-real"
os.environ["OPENAI_API_KEY"] = "test-key-not-real"
os.environ["MISTRAL_API_KEY"] = "test-key-not-real"
os.environ["GROQ_API_KEY"] = "test-key-not-real"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"

# Now safe to import everything else
import pytest
from fastapi.testclient import TestClient

from llm_relay.adapters.base import AdapterResponse, GenerationRequest, ProviderAdapter
from llm_relay.registry.models import ProviderDescriptor, ProviderStatus


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


class ScriptedAdapter(ProviderAdapter):
    """
    Fake adapter with a fixed outcome.

    outcome is None for a successful echo, a string for a fixed reply, or
    an exception instance to raise. delay simulates a slow backend.
    """

    def __init__(self, provider_id: str, outcome=None, delay: float = 0.0):
        self.provider_id = provider_id
        self.outcome = outcome
        self.delay = delay
        self.calls = 0
        self.requests: list[GenerationRequest] = []
        self.cancelled = False

    async def send(self, request, descriptor):
        self.calls += 1
        self.requests.append(request)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return AdapterResponse(
            content=self.outcome or f"response from {self.provider_id}",
            model=self.resolve_model(request, descriptor),
            latency_ms=1.0,
        )


@pytest.fixture(autouse=True)
def reset_singletons(tmp_path, monkeypatch):
    """
    Reset all singleton instances between tests.

    Each test gets its own routing config file so persisted writes never
    leak into the next test.
    """
    from llm_relay.config import get_settings

    monkeypatch.setenv("ROUTING_CONFIG_PATH", str(tmp_path / "ai-routing.json"))
    get_settings.cache_clear()

    yield

    from llm_relay.adapters.clients import reset_clients
    from llm_relay.adapters.registry import reset_adapter_registry
    from llm_relay.dispatcher.handlers import reset_dispatcher
    from llm_relay.metrics import store as metrics_store
    from llm_relay.registry.store import reset_descriptor_store
    from llm_relay.router.engine import reset_provider_router

    reset_descriptor_store()
    reset_provider_router()
    reset_adapter_registry()
    reset_clients()
    reset_dispatcher()
    if metrics_store._store is not None:
        metrics_store._store.reset()
    get_settings.cache_clear()


@pytest.fixture
def make_descriptor():
    """
    Factory fixture for ProviderDescriptor objects.

    Usage:
        d = make_descriptor("claude", priority=1, status="stub")
    """

    def _create(
        provider_id: str,
        priority: int = 1,
        enabled: bool = True,
        status: str = "configured",
        has_credentials: bool = True,
        supported_models: list[str] | None = None,
        display_name: str | None = None,
    ) -> ProviderDescriptor:
        return ProviderDescriptor(
            id=provider_id,
            display_name=display_name or provider_id.title(),
            priority=priority,
            enabled=enabled,
            status=ProviderStatus(status),
            supported_models=(
                supported_models
                if supported_models is not None
                else [f"{provider_id}-model"]
            ),
            has_credentials=has_credentials,
        )

    return _create


@pytest.fixture
def make_adapter():
    """
    Factory fixture for ScriptedAdapter objects.

    Usage:
        failing = make_adapter("openai", BackendError("boom"))
        slow = make_adapter("claude", delay=5.0)
    """

    def _create(provider_id: str, outcome=None, delay: float = 0.0) -> ScriptedAdapter:
        return ScriptedAdapter(provider_id, outcome=outcome, delay=delay)

    return _create


@pytest.fixture
def make_store(make_descriptor):
    """
    Build an in-memory DescriptorStore from (id, priority, status) specs.

    Usage:
        store = make_store([("a", 1), ("b", 2, "stub")])
    """
    from llm_relay.registry.store import DescriptorStore

    def _create(specs, **kwargs):
        descriptors = []
        for spec in specs:
            if isinstance(spec, ProviderDescriptor):
                descriptors.append(spec)
                continue
            provider_id, priority, *rest = spec
            status = rest[0] if rest else "configured"
            descriptors.append(make_descriptor(provider_id, priority=priority, status=status))
        return DescriptorStore(descriptors, credential_check=lambda _id: True, **kwargs)

    return _create


@pytest.fixture
def fake_adapters(make_adapter):
    """
    Install scripted adapters for the four built-in providers globally.

    Returns the adapters by provider id so tests can change outcomes and
    inspect call counts.
    """
    from llm_relay.adapters import registry as adapter_registry

    adapters = {
        provider_id: make_adapter(provider_id)
        for provider_id in ("claude", "openai", "mistral", "groq")
    }
    adapter_registry._registry_instance = adapter_registry.AdapterRegistry(
        list(adapters.values())
    )
    return adapters


@pytest.fixture
def test_client(fake_adapters):
    """
    Create a FastAPI TestClient with scripted adapters.

    No request ever reaches a real provider.
    """
    # Clear cached app module to ensure a fresh import
    if "llm_relay.main" in sys.modules:
        del sys.modules["llm_relay.main"]

    from llm_relay.main import app

    with TestClient(app) as client:
        yield client

    if "llm_relay.main" in sys.modules:
        del sys.modules["llm_relay.main"]


@pytest.fixture
def provider_entries():
    """A valid PUT /admin/routing/config body."""
    return {
        "providers": [
            {
                "id": "claude",
                "display_name": "Claude",
                "priority": 1,
                "enabled": True,
                "status": "configured",
                "supported_models": ["claude-3-5-sonnet-20241022"],
            },
            {
                "id": "openai",
                "display_name": "OpenAI",
                "priority": 2,
                "enabled": True,
                "status": "configured",
                "supported_models": ["gpt-4o"],
            },
            {
                "id": "placeholder",
                "display_name": "Placeholder",
                "priority": 0,
                "enabled": True,
                "status": "stub",
                "supported_models": [],
            },
        ],
        "global_fallback": True,
    }
