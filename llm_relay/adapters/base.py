"""
Provider Adapter contract.

Every backend is wrapped in a ProviderAdapter with one coroutine, send(),
that either returns an AdapterResponse or raises one of a small set of
typed failures:

- Unconfigured: no credentials / no adapter / authentication rejected
- RateLimited: the backend asked us to back off
- AdapterTimeout: the backend did not answer in time
- BackendError: anything else the backend reported

Adapters translate their SDK's exceptions into this taxonomy, so the
dispatcher never sees a vendor-specific error shape.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from llm_relay.registry.models import ProviderDescriptor

logger = logging.getLogger(__name__)


@dataclass
class GenerationRequest:
    """
    A provider-agnostic generation request.

    Everything except the prompt is an optional per-call override passed
    through to whichever adapter serves the request.

    Attributes:
        prompt: The user prompt
        system_prompt: Optional system instructions
        model: Preferred model id, used when the serving provider offers it
        temperature: Sampling temperature override
        max_tokens: Output size override
        preferred_provider: Provider to try first within its tier
        metadata: Opaque caller data, echoed back untouched
    """

    prompt: str
    system_prompt: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    preferred_provider: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class AdapterResponse:
    """What a single successful provider call produced."""

    content: str
    model: str
    latency_ms: float = 0.0


class AdapterError(Exception):
    """
    Base class for typed adapter failures.

    Attributes:
        kind: Machine-readable failure kind
        provider_id: Provider that failed
        detail: Human-readable detail for operators (never shown to end users)
    """

    kind = "backend_error"

    def __init__(self, detail: str, provider_id: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.provider_id = provider_id


class Unconfigured(AdapterError):
    kind = "unconfigured"


class RateLimited(AdapterError):
    kind = "rate_limited"

    def __init__(
        self,
        detail: str,
        provider_id: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(detail, provider_id)
        self.retry_after = retry_after


class AdapterTimeout(AdapterError):
    kind = "timeout"


class BackendError(AdapterError):
    kind = "backend_error"


def translate_sdk_error(sdk: Any, error: Exception, provider_id: str) -> AdapterError:
    """
    Map an exception from an OpenAI-style SDK onto the adapter taxonomy.

    The openai, groq and anthropic SDKs share the same exception names,
    so the SDK module itself is passed in.

    Args:
        sdk: The SDK module (openai, groq or anthropic).
        error: Exception raised by the SDK.
        provider_id: Provider that raised it.

    Returns:
        The matching AdapterError subclass instance.
    """
    if isinstance(error, sdk.APITimeoutError):
        return AdapterTimeout(f"{provider_id} request timed out", provider_id)

    if isinstance(error, sdk.RateLimitError):
        retry_after = None
        headers = getattr(getattr(error, "response", None), "headers", None) or {}
        if headers.get("retry-after"):
            try:
                retry_after = float(headers["retry-after"])
            except ValueError:
                pass
        return RateLimited(
            f"{provider_id} rate limit exceeded", provider_id, retry_after=retry_after
        )

    if isinstance(error, (sdk.AuthenticationError, sdk.PermissionDeniedError)):
        return Unconfigured(f"{provider_id} rejected credentials: {error}", provider_id)

    return BackendError(f"{provider_id} API error: {error}", provider_id)


class ProviderAdapter(ABC):
    """
    Translates a GenerationRequest into one backend's calling convention.

    Subclasses set provider_id and implement send().

    Example:
        class EchoAdapter(ProviderAdapter):
            provider_id = "echo"

            async def send(self, request, descriptor):
                return AdapterResponse(content=request.prompt, model="echo")

        get_adapter_registry().register(EchoAdapter())
    """

    provider_id: str = ""

    @abstractmethod
    async def send(
        self,
        request: GenerationRequest,
        descriptor: ProviderDescriptor,
    ) -> AdapterResponse:
        """
        Generate a completion for the request.

        Raises:
            AdapterError: One of Unconfigured, RateLimited, AdapterTimeout,
                BackendError.
        """

    @staticmethod
    def resolve_model(request: GenerationRequest, descriptor: ProviderDescriptor) -> str:
        """Use the requested model if this provider offers it, else its first model."""
        if request.model and request.model in descriptor.supported_models:
            return request.model
        if descriptor.supported_models:
            return descriptor.supported_models[0]
        raise Unconfigured(
            f"Provider '{descriptor.id}' declares no supported models", descriptor.id
        )

    @staticmethod
    def build_messages(request: GenerationRequest) -> list[dict[str, str]]:
        """Chat-completions message list: optional system turn, then the prompt."""
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        return messages
