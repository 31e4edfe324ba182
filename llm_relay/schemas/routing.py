"""
Pydantic Schemas for the Relay API

This module defines the request and response models for the LLM Relay API:
- GenerateRequest / GenerateResponse: content generation through fallback
- Routing configuration, preference and provider status views
- Error responses, metrics, and health check schemas

All schemas follow Pydantic v2 patterns with field descriptions for the
OpenAPI documentation.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from llm_relay.registry.models import ProviderConfigEntry, ProviderStatus

if TYPE_CHECKING:
    from llm_relay.dispatcher.handlers import DispatchResult


UNAVAILABLE_MESSAGE = "Content generation is temporarily unavailable"


# =============================================================================
# REQUEST MODELS
# =============================================================================


class GenerateRequest(BaseModel):
    """
    Request body for the /generate endpoint.

    Example:
        {
            "prompt": "Write a haiku about the sea",
            "temperature": 0.5,
            "preferred_provider": "openai"
        }
    """

    prompt: str = Field(
        ...,
        min_length=1,
        max_length=20000,
        description="The prompt to generate content for",
    )

    model: str | None = Field(
        default=None,
        max_length=200,
        description="Preferred model; ignored by providers that do not list it",
    )

    system_prompt: str | None = Field(
        default=None,
        max_length=20000,
        description="Optional system instruction",
    )

    temperature: float | None = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Sampling temperature (default from settings)",
    )

    max_tokens: int | None = Field(
        default=None,
        gt=0,
        description="Maximum output tokens (default from settings)",
    )

    preferred_provider: str | None = Field(
        default=None,
        max_length=64,
        description="Provider to try first within its tier, if eligible",
    )

    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Caller metadata echoed back in the response",
    )

    timeout_seconds: float | None = Field(
        default=None,
        gt=0.0,
        le=300.0,
        description="Per-provider call timeout override",
    )

    max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Maximum provider calls for this request",
    )

    @field_validator("prompt")
    @classmethod
    def validate_prompt_not_whitespace(cls, v: str) -> str:
        """Ensure prompt is not empty or whitespace only."""
        if not v.strip():
            raise ValueError("Prompt cannot be empty or whitespace only")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"prompt": "Summarise the plot of Hamlet in two sentences"},
                {
                    "prompt": "Write a haiku about the sea",
                    "temperature": 0.5,
                    "preferred_provider": "openai",
                },
            ]
        }
    )


class RoutingConfigPayload(BaseModel):
    """
    Request body for PUT /admin/routing/config.

    A full replacement of the provider set; entries missing a required
    field are rejected with 422.
    """

    providers: list[ProviderConfigEntry] = Field(
        ...,
        description="Complete provider set, in registration order",
    )

    global_fallback: bool | None = Field(
        default=None,
        description="Whether a failed provider falls through to the next (omit to keep)",
    )


class ProviderTestRequest(BaseModel):
    """Optional body for POST /providers/{id}/test."""

    prompt: str = Field(
        default="Reply with the single word: ok",
        min_length=1,
        max_length=2000,
        description="Prompt sent to the provider",
    )

    model: str | None = Field(default=None, description="Model to test")


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class GenerationMetadata(BaseModel):
    """Which provider served a request and how."""

    provider_used: str = Field(..., description="Provider that produced the content")

    degraded: bool = Field(
        ...,
        description="True when a placeholder provider served the request",
    )

    attempts: int = Field(..., ge=1, description="Provider calls made")

    latency_ms: float = Field(
        ...,
        ge=0.0,
        description="Total time including failed attempts",
    )

    request: dict[str, Any] = Field(
        default_factory=dict,
        description="Caller metadata echoed back",
    )


class GenerateResponse(BaseModel):
    """
    Response from the /generate endpoint.

    Example:
        {
            "content": "Waves fold into foam...",
            "model": "gpt-4o-mini",
            "metadata": {
                "provider_used": "openai",
                "degraded": false,
                "attempts": 2,
                "latency_ms": 812.4
            }
        }
    """

    content: str = Field(..., description="Generated content")

    model: str = Field(..., description="Model that generated the content")

    metadata: GenerationMetadata


class RoutingConfigResponse(BaseModel):
    """The persisted routing table as seen by operators."""

    providers: list[ProviderConfigEntry]

    global_fallback: bool

    last_updated: datetime | None = Field(
        default=None,
        description="Time of the last administrative write (UTC)",
    )


class ProviderPreferenceEntry(BaseModel):
    id: str
    display_name: str
    priority: int
    enabled: bool
    status: ProviderStatus
    eligible: bool


class PreferencesResponse(BaseModel):
    """
    Router-ordered view of every provider.

    `priority` is the order the router ranks providers in, eligible or not.
    """

    priority: list[str]

    global_fallback: bool

    providers: list[ProviderPreferenceEntry]


class ProviderStatusEntry(BaseModel):
    id: str
    display_name: str
    eligible: bool
    status: ProviderStatus
    reason: str | None = Field(
        default=None,
        description="Why the provider is ineligible, if it is",
    )


class StatusResponse(BaseModel):
    """Response from GET /providers/status."""

    providers: list[ProviderStatusEntry]

    any_available: bool = Field(
        ...,
        description="Whether at least one provider can serve requests",
    )


class BestProviderResponse(BaseModel):
    """Provider a request would currently be sent to first."""

    id: str
    display_name: str
    priority: int
    status: ProviderStatus
    degraded: bool = Field(..., description="True when the best provider is a stub")


class ProviderTestResponse(BaseModel):
    """Result of a direct single-provider call."""

    provider_id: str
    success: bool
    model: str
    content: str
    latency_ms: float = Field(..., ge=0.0)


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    DUPLICATE_PROVIDER = "DUPLICATE_PROVIDER"
    CONFIG_ERROR = "CONFIG_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ErrorDetail(BaseModel):
    """
    Detailed error information for API error responses.

    Provides machine-readable error codes, human-readable messages,
    and optional field information for validation errors.
    """

    code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "SERVICE_UNAVAILABLE",
                "message": "Content generation is temporarily unavailable",
                "field": null
            }
        }
    """

    error: ErrorDetail = Field(
        ...,
        description="Error details",
    )


# =============================================================================
# METRICS MODELS
# =============================================================================


class LastFailure(BaseModel):
    kind: str
    detail: str
    timestamp: datetime


class ProviderMetrics(BaseModel):
    """
    Aggregated dispatch metrics for one provider.

    Counts only real attempts; skipped candidates are not failures.
    """

    provider_id: str = Field(..., description="Provider identifier")

    successes: int = Field(default=0, ge=0, description="Requests served")

    failures: int = Field(default=0, ge=0, description="Failed attempts")

    failures_by_kind: dict[str, int] = Field(
        default_factory=dict,
        description="Failed attempts by kind (timeout, rate_limited, ...)",
    )

    last_failure: LastFailure | None = Field(
        default=None,
        description="Most recent failure, for operators",
    )

    last_success_at: datetime | None = Field(
        default=None,
        description="When this provider last served a request",
    )


class MetricsResponse(BaseModel):
    """
    Response from the /metrics endpoint.

    Example:
        {
            "total_requests": 120,
            "outcomes": {"success": 118, "exhausted": 2},
            "degraded_responses": 3,
            "total_attempts": 131,
            "providers": {...},
            "avg_latency_ms": 640.2
        }
    """

    total_requests: int = Field(default=0, ge=0, description="Dispatches recorded")

    outcomes: dict[str, int] = Field(
        default_factory=dict,
        description="Dispatches by outcome (success, exhausted, no_provider, cancelled)",
    )

    degraded_responses: int = Field(
        default=0,
        ge=0,
        description="Requests served by a placeholder provider",
    )

    total_attempts: int = Field(default=0, ge=0, description="Provider calls made")

    providers: dict[str, ProviderMetrics] = Field(
        default_factory=dict,
        description="Per-provider breakdown",
    )

    avg_latency_ms: float = Field(
        default=0.0,
        ge=0.0,
        description="Average end-to-end dispatch latency",
    )


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ComponentHealth(BaseModel):
    """Health status of an individual system component."""

    name: str = Field(
        ...,
        description="Component name (e.g., 'router', 'claude', 'openai')",
    )

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Component health status",
    )

    message: str | None = Field(
        default=None,
        description="Additional status information",
    )


class HealthResponse(BaseModel):
    """
    Response from the /health endpoint.

    Example:
        {
            "status": "healthy",
            "service": "llm-relay",
            "version": "0.1.0",
            "components": [
                {"name": "router", "status": "healthy"},
                {"name": "claude", "status": "healthy"}
            ],
            "uptime_seconds": 3600.5
        }
    """

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        ...,
        description="Overall service health status",
    )

    service: str = Field(
        default="llm-relay",
        description="Service identifier",
    )

    version: str = Field(
        ...,
        description="Application version",
    )

    components: list[ComponentHealth] = Field(
        default_factory=list,
        description="Health status of individual components",
    )

    uptime_seconds: float | None = Field(
        default=None,
        ge=0.0,
        description="Time since service start in seconds",
    )


# =============================================================================
# CONVERSION UTILITIES
# =============================================================================


def build_generate_response(result: "DispatchResult") -> GenerateResponse:
    """
    Convert a DispatchResult into the /generate response body.

    Args:
        result: Result from the dispatcher

    Returns:
        GenerateResponse ready for API serialization
    """
    return GenerateResponse(
        content=result.content,
        model=result.model,
        metadata=GenerationMetadata(
            provider_used=result.provider_used,
            degraded=result.degraded,
            attempts=result.attempts,
            latency_ms=round(result.latency_ms, 2),
            request=result.metadata,
        ),
    )
