"""
Adapter Tests

Tests for provider adapters with mocked SDK clients. Validates request
translation, response parsing, SDK error translation and the adapter
registry.

Test Categories:
1. TestModelResolution - resolve_model() / build_messages()
2. TestChatCompletionsAdapters - OpenAI, Mistral, Groq
3. TestClaudeAdapter - Anthropic Messages API
4. TestErrorTranslation - SDK exceptions to adapter failures
5. TestProviderClients - lazy clients and missing keys
6. TestStubAdapter / TestAdapterRegistry
"""

from unittest.mock import AsyncMock, MagicMock

import anthropic
import groq
import httpx
import openai
import pytest

from llm_relay.adapters import (
    AdapterRegistry,
    AdapterTimeout,
    BackendError,
    ChatCompletionsAdapter,
    ClaudeAdapter,
    GenerationRequest,
    GroqAdapter,
    MistralAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    ProviderClients,
    RateLimited,
    StubAdapter,
    Unconfigured,
    get_adapter_registry,
    translate_sdk_error,
)
from llm_relay.config import Settings


def _http_response(status: int, headers: dict | None = None) -> httpx.Response:
    return httpx.Response(
        status,
        headers=headers or {},
        request=httpx.Request("POST", "https://api.example.com/v1/chat/completions"),
    )


def _status_error(sdk, cls_name: str, status: int, headers: dict | None = None):
    cls = getattr(sdk, cls_name)
    return cls("error", response=_http_response(status, headers), body=None)


def _timeout_error(sdk):
    return sdk.APITimeoutError(
        request=httpx.Request("POST", "https://api.example.com/v1/chat/completions")
    )


@pytest.fixture
def mock_chat_response():
    """Create a mock chat-completions response object."""
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content="Waves fold into foam"))]
    return response


@pytest.fixture
def mock_chat_client(mock_chat_response):
    """Create a fully mocked OpenAI-compatible async client."""
    mock = AsyncMock()
    mock.chat = MagicMock()
    mock.chat.completions = MagicMock()
    mock.chat.completions.create = AsyncMock(return_value=mock_chat_response)
    return mock


@pytest.fixture
def mock_claude_client():
    """Create a mocked AsyncAnthropic client."""
    response = MagicMock()
    response.content = [
        MagicMock(type="text", text="Hello "),
        MagicMock(type="tool_use", text="ignored"),
        MagicMock(type="text", text="world"),
    ]
    mock = AsyncMock()
    mock.messages = MagicMock()
    mock.messages.create = AsyncMock(return_value=response)
    return mock


@pytest.fixture
def mock_provider_clients(mock_chat_client, mock_claude_client):
    """A ProviderClients stand-in whose every backend is mocked."""
    clients = MagicMock()
    clients.openai = mock_chat_client
    clients.mistral = mock_chat_client
    clients.groq = mock_chat_client
    clients.claude = mock_claude_client
    return clients


class TestModelResolution:
    """Model selection and message building."""

    def test_requested_model_used_when_supported(self, make_descriptor):
        d = make_descriptor("openai", supported_models=["gpt-4o", "gpt-4o-mini"])

        model = ProviderAdapter.resolve_model(GenerationRequest(prompt="x", model="gpt-4o-mini"), d)

        assert model == "gpt-4o-mini"

    def test_unsupported_model_falls_back_to_first(self, make_descriptor):
        d = make_descriptor("openai", supported_models=["gpt-4o", "gpt-4o-mini"])

        model = ProviderAdapter.resolve_model(GenerationRequest(prompt="x", model="claude-3"), d)

        assert model == "gpt-4o"

    def test_no_models_is_unconfigured(self, make_descriptor):
        d = make_descriptor("openai", supported_models=[])

        with pytest.raises(Unconfigured):
            ProviderAdapter.resolve_model(GenerationRequest(prompt="x"), d)

    def test_messages_include_system_prompt(self):
        messages = ProviderAdapter.build_messages(
            GenerationRequest(prompt="hi", system_prompt="be brief")
        )

        assert messages == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ]

    def test_messages_without_system_prompt(self):
        messages = ProviderAdapter.build_messages(GenerationRequest(prompt="hi"))

        assert messages == [{"role": "user", "content": "hi"}]


class TestChatCompletionsAdapters:
    """OpenAI, Mistral and Groq share one translation."""

    def test_base_requires_a_client(self):
        with pytest.raises(TypeError):
            ChatCompletionsAdapter()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("adapter_cls", [OpenAIAdapter, MistralAdapter, GroqAdapter])
    async def test_send_success(
        self, adapter_cls, mock_provider_clients, mock_chat_client, make_descriptor
    ):
        adapter = adapter_cls(clients=mock_provider_clients)
        descriptor = make_descriptor(adapter.provider_id, supported_models=["m-1", "m-2"])

        response = await adapter.send(GenerationRequest(prompt="haiku"), descriptor)

        assert response.content == "Waves fold into foam"
        assert response.model == "m-1"
        assert response.latency_ms >= 0
        kwargs = mock_chat_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m-1"
        assert kwargs["messages"] == [{"role": "user", "content": "haiku"}]
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 1000

    @pytest.mark.asyncio
    async def test_overrides_pass_through(
        self, mock_provider_clients, mock_chat_client, make_descriptor
    ):
        adapter = OpenAIAdapter(clients=mock_provider_clients)
        descriptor = make_descriptor("openai", supported_models=["gpt-4o", "gpt-4o-mini"])

        await adapter.send(
            GenerationRequest(
                prompt="haiku",
                system_prompt="poet",
                model="gpt-4o-mini",
                temperature=0.0,
                max_tokens=50,
            ),
            descriptor,
        )

        kwargs = mock_chat_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 50
        assert kwargs["messages"][0] == {"role": "system", "content": "poet"}

    @pytest.mark.asyncio
    async def test_empty_completion_is_backend_error(
        self, mock_provider_clients, mock_chat_response, make_descriptor
    ):
        mock_chat_response.choices = []
        adapter = OpenAIAdapter(clients=mock_provider_clients)

        with pytest.raises(BackendError):
            await adapter.send(GenerationRequest(prompt="x"), make_descriptor("openai"))

    @pytest.mark.asyncio
    async def test_rate_limit_translated(
        self, mock_provider_clients, mock_chat_client, make_descriptor
    ):
        mock_chat_client.chat.completions.create.side_effect = _status_error(
            openai, "RateLimitError", 429, {"retry-after": "2"}
        )
        adapter = OpenAIAdapter(clients=mock_provider_clients)

        with pytest.raises(RateLimited) as exc_info:
            await adapter.send(GenerationRequest(prompt="x"), make_descriptor("openai"))

        assert exc_info.value.retry_after == 2.0
        assert exc_info.value.provider_id == "openai"

    @pytest.mark.asyncio
    async def test_groq_errors_translated(
        self, mock_provider_clients, mock_chat_client, make_descriptor
    ):
        mock_chat_client.chat.completions.create.side_effect = _timeout_error(groq)
        adapter = GroqAdapter(clients=mock_provider_clients)

        with pytest.raises(AdapterTimeout):
            await adapter.send(GenerationRequest(prompt="x"), make_descriptor("groq"))

    @pytest.mark.asyncio
    async def test_missing_key_is_unconfigured(self, make_descriptor):
        clients = ProviderClients(Settings(openai_api_key=""))
        adapter = OpenAIAdapter(clients=clients)

        with pytest.raises(Unconfigured):
            await adapter.send(GenerationRequest(prompt="x"), make_descriptor("openai"))


class TestClaudeAdapter:
    """Anthropic Messages API translation."""

    @pytest.mark.asyncio
    async def test_send_joins_text_blocks(
        self, mock_provider_clients, mock_claude_client, make_descriptor
    ):
        adapter = ClaudeAdapter(clients=mock_provider_clients)
        descriptor = make_descriptor("claude", supported_models=["claude-3-5-sonnet-20241022"])

        response = await adapter.send(
            GenerationRequest(prompt="hi", system_prompt="be kind"), descriptor
        )

        assert response.content == "Hello world"
        assert response.model == "claude-3-5-sonnet-20241022"
        kwargs = mock_claude_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "be kind"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
        assert kwargs["max_tokens"] == 1000

    @pytest.mark.asyncio
    async def test_no_system_kwarg_without_system_prompt(
        self, mock_provider_clients, mock_claude_client, make_descriptor
    ):
        adapter = ClaudeAdapter(clients=mock_provider_clients)

        await adapter.send(GenerationRequest(prompt="hi"), make_descriptor("claude"))

        assert "system" not in mock_claude_client.messages.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_auth_error_is_unconfigured(
        self, mock_provider_clients, mock_claude_client, make_descriptor
    ):
        mock_claude_client.messages.create.side_effect = _status_error(
            anthropic, "AuthenticationError", 401
        )
        adapter = ClaudeAdapter(clients=mock_provider_clients)

        with pytest.raises(Unconfigured):
            await adapter.send(GenerationRequest(prompt="hi"), make_descriptor("claude"))

    @pytest.mark.asyncio
    async def test_empty_text_is_backend_error(
        self, mock_provider_clients, mock_claude_client, make_descriptor
    ):
        mock_claude_client.messages.create.return_value.content = []
        adapter = ClaudeAdapter(clients=mock_provider_clients)

        with pytest.raises(BackendError):
            await adapter.send(GenerationRequest(prompt="hi"), make_descriptor("claude"))


class TestErrorTranslation:
    """translate_sdk_error() for each SDK."""

    @pytest.mark.parametrize("sdk", [openai, groq, anthropic])
    def test_timeout(self, sdk):
        assert isinstance(translate_sdk_error(sdk, _timeout_error(sdk), "p"), AdapterTimeout)

    @pytest.mark.parametrize("sdk", [openai, groq, anthropic])
    def test_rate_limit(self, sdk):
        error = translate_sdk_error(sdk, _status_error(sdk, "RateLimitError", 429), "p")

        assert isinstance(error, RateLimited)
        assert error.retry_after is None

    @pytest.mark.parametrize("sdk", [openai, groq, anthropic])
    def test_permission_denied(self, sdk):
        error = translate_sdk_error(sdk, _status_error(sdk, "PermissionDeniedError", 403), "p")

        assert isinstance(error, Unconfigured)

    @pytest.mark.parametrize("sdk", [openai, groq, anthropic])
    def test_server_error(self, sdk):
        error = translate_sdk_error(sdk, _status_error(sdk, "InternalServerError", 500), "p")

        assert isinstance(error, BackendError)
        assert error.kind == "backend_error"
        assert error.provider_id == "p"

    def test_invalid_retry_after_ignored(self):
        error = translate_sdk_error(
            openai,
            _status_error(openai, "RateLimitError", 429, {"retry-after": "soon"}),
            "p",
        )

        assert isinstance(error, RateLimited)
        assert error.retry_after is None


class TestProviderClients:
    """Lazy SDK clients."""

    def test_missing_key_raises_unconfigured(self):
        clients = ProviderClients(Settings(claude_api_key=None, groq_api_key=""))

        with pytest.raises(Unconfigured):
            clients.groq

    def test_clients_have_retries_disabled(self):
        clients = ProviderClients(Settings(openai_api_key="k", claude_api_key="k"))

        assert clients.openai.max_retries == 0
        assert clients.claude.max_retries == 0

    def test_client_is_cached(self):
        clients = ProviderClients(Settings(openai_api_key="k"))

        assert clients.openai is clients.openai

    def test_mistral_uses_its_base_url(self):
        clients = ProviderClients(Settings(mistral_api_key="k"))

        assert str(clients.mistral.base_url).startswith("https://api.mistral.ai/v1")


class TestStubAdapter:
    """Placeholder responses."""

    @pytest.mark.asyncio
    async def test_returns_notice(self, make_descriptor):
        descriptor = make_descriptor(
            "placeholder", status="stub", display_name="Backup AI", supported_models=[]
        )

        response = await StubAdapter().send(GenerationRequest(prompt="x"), descriptor)

        assert "Backup AI is currently unavailable" in response.content
        assert response.model == "stub"


class TestAdapterRegistry:
    """Provider id to adapter lookup."""

    def test_default_registry_has_builtin_adapters(self):
        assert sorted(get_adapter_registry().registered_ids()) == [
            "claude",
            "groq",
            "mistral",
            "openai",
        ]

    def test_stub_descriptor_resolves_to_stub_adapter(self, make_descriptor):
        registry = AdapterRegistry([OpenAIAdapter()])

        adapter = registry.resolve(make_descriptor("openai", status="stub"))

        assert adapter is registry.stub_adapter

    def test_unknown_provider_is_unconfigured(self, make_descriptor):
        with pytest.raises(Unconfigured):
            AdapterRegistry().resolve(make_descriptor("unknown"))

    def test_register_under_custom_id(self, make_descriptor):
        adapter = OpenAIAdapter()
        registry = AdapterRegistry()

        registry.register(adapter, provider_id="azure-openai")

        assert registry.resolve(make_descriptor("azure-openai")) is adapter

    def test_register_without_id_rejected(self):
        adapter = StubAdapter()
        adapter.provider_id = ""

        with pytest.raises(ValueError):
            AdapterRegistry().register(adapter)
