"""
Schemas module: Pydantic request/response models.

This module provides validated data models for the LLM Relay API:
- Request/response models for /generate
- Routing configuration, preference and status views
- Error response models for consistent error handling
- Metrics and health check response models

Example usage:
    from llm_relay.schemas import GenerateRequest, build_generate_response

    request = GenerateRequest(prompt="Hello world")
    response = build_generate_response(dispatch_result)
"""

from llm_relay.schemas.routing import (
    UNAVAILABLE_MESSAGE,
    # Request models
    GenerateRequest,
    RoutingConfigPayload,
    ProviderTestRequest,
    # Response models
    GenerateResponse,
    GenerationMetadata,
    RoutingConfigResponse,
    PreferencesResponse,
    ProviderPreferenceEntry,
    ProviderStatusEntry,
    StatusResponse,
    BestProviderResponse,
    ProviderTestResponse,
    # Error models
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    # Metrics models
    LastFailure,
    ProviderMetrics,
    MetricsResponse,
    # Health models
    ComponentHealth,
    HealthResponse,
    # Conversion utilities
    build_generate_response,
)

__all__ = [
    "UNAVAILABLE_MESSAGE",
    # Request models
    "GenerateRequest",
    "RoutingConfigPayload",
    "ProviderTestRequest",
    # Response models
    "GenerateResponse",
    "GenerationMetadata",
    "RoutingConfigResponse",
    "PreferencesResponse",
    "ProviderPreferenceEntry",
    "ProviderStatusEntry",
    "StatusResponse",
    "BestProviderResponse",
    "ProviderTestResponse",
    # Error models
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    # Metrics models
    "LastFailure",
    "ProviderMetrics",
    "MetricsResponse",
    # Health models
    "ComponentHealth",
    "HealthResponse",
    # Conversion utilities
    "build_generate_response",
]
