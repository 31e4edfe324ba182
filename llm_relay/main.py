"""
LLM Relay: FastAPI Application Entry Point

This module initializes the FastAPI application and defines the endpoints:
- /health: Health check endpoint
- /config: Non-sensitive configuration values
- /admin/routing/*: Routing table administration
- /providers/*: Provider status, best provider, direct tests
- /generate: Content generation with cross-provider fallback
- /metrics: Dispatch statistics endpoint

The application uses a lifespan context manager to:
1. Load configuration and configure logging
2. Load the persisted routing table (or the defaults)
3. Log which providers are eligible to serve traffic
"""

from contextlib import asynccontextmanager
import logging
import time

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from llm_relay import __version__
from llm_relay.adapters import AdapterError, GenerationRequest, get_adapter_registry
from llm_relay.config import Settings, configure_logging, get_settings
from llm_relay.dispatcher import DispatchOptions, get_dispatcher
from llm_relay.metrics import MetricsReporter
from llm_relay.registry import (
    DescriptorNotFound,
    DuplicateProviderError,
    RoutingConfigError,
    get_descriptor_store,
)
from llm_relay.router import (
    NoProviderAvailable,
    RoutingError,
    get_provider_router,
    ineligibility_reason,
)
from llm_relay.schemas import (
    UNAVAILABLE_MESSAGE,
    BestProviderResponse,
    ComponentHealth,
    ErrorCodes,
    ErrorResponse,
    GenerateRequest,
    GenerateResponse,
    HealthResponse,
    MetricsResponse,
    PreferencesResponse,
    ProviderTestRequest,
    ProviderTestResponse,
    RoutingConfigPayload,
    RoutingConfigResponse,
    StatusResponse,
    build_generate_response,
)

logger = logging.getLogger(__name__)

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup/shutdown events.

    On startup:
    - Loads configuration from environment
    - Configures logging
    - Loads the routing table and reports provider eligibility

    Missing API keys never stop startup; they only make providers
    ineligible.
    """
    settings = get_settings()
    configure_logging(settings)

    logger.info("=" * 60)
    logger.info("LLM Relay starting up...")
    logger.info("=" * 60)
    logger.info(f"Routing config: {settings.routing_config_path}")
    logger.info(f"Dispatch timeout: {settings.dispatch_timeout_seconds}s")
    logger.info(f"Debug mode: {'enabled' if settings.debug else 'disabled'}")

    store = get_descriptor_store()
    snapshot = store.snapshot()
    logger.info(
        f"Routing table: {len(snapshot.descriptors)} providers, "
        f"global_fallback={snapshot.global_fallback}"
    )
    for descriptor in snapshot.descriptors:
        reason = ineligibility_reason(descriptor)
        state = "eligible" if reason is None else reason.value
        logger.info(
            f"  - {descriptor.id} (priority {descriptor.priority}, "
            f"{descriptor.status.value}): {state}"
        )

    if not get_provider_router().is_any_provider_available():
        logger.warning("No AI provider is eligible; /generate will return 503")

    global _start_time
    _start_time = time.time()

    logger.info("=" * 60)
    logger.info("LLM Relay ready to accept requests")

    yield

    logger.info("LLM Relay shutting down...")


app = FastAPI(
    title="LLM Relay",
    description="Priority-ordered routing and fallback across LLM providers",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _unavailable() -> HTTPException:
    return HTTPException(
        status_code=503,
        detail={"code": ErrorCodes.SERVICE_UNAVAILABLE, "message": UNAVAILABLE_MESSAGE},
    )


def _not_found(e: DescriptorNotFound) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"code": ErrorCodes.PROVIDER_NOT_FOUND, "message": str(e)},
    )


@app.get("/")
async def root():
    """
    Root endpoint with API information.
    """
    return {
        "name": "LLM Relay",
        "description": "Routing and fallback across LLM providers",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "config": "/config",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check system health and provider eligibility.",
)
async def health_check():
    """
    Health check endpoint for monitoring and orchestration.

    - healthy: at least one configured (non-stub) provider is eligible
    - degraded: only placeholder providers are eligible
    - unhealthy: nothing can serve requests
    """
    components = []
    overall_status = "healthy"

    try:
        store = get_descriptor_store()
        components.append(
            ComponentHealth(
                name="registry",
                status="healthy",
                message=f"{len(store.list_descriptors())} providers registered",
            )
        )
    except Exception as e:
        components.append(ComponentHealth(name="registry", status="unhealthy", message=str(e)))
        return HealthResponse(
            status="unhealthy",
            version=__version__,
            components=components,
        )

    candidates = get_provider_router().candidate_order()
    if not candidates:
        overall_status = "unhealthy"
        components.append(
            ComponentHealth(name="router", status="unhealthy", message="No eligible provider")
        )
    elif candidates[0].is_stub:
        overall_status = "degraded"
        components.append(
            ComponentHealth(
                name="router",
                status="degraded",
                message="Only placeholder providers are eligible",
            )
        )
    else:
        components.append(
            ComponentHealth(
                name="router",
                status="healthy",
                message=f"{len(candidates)} eligible providers, best: {candidates[0].id}",
            )
        )

    for descriptor in store.list_descriptors():
        reason = ineligibility_reason(descriptor)
        if reason is None:
            status = "degraded" if descriptor.is_stub else "healthy"
        else:
            status = "unhealthy"
        components.append(
            ComponentHealth(
                name=descriptor.id,
                status=status,
                message=reason.value if reason else None,
            )
        )

    uptime = time.time() - _start_time if _start_time > 0 else 0.0

    return HealthResponse(
        status=overall_status,
        version=__version__,
        components=components,
        uptime_seconds=uptime,
    )


@app.get("/config")
async def show_config(settings: Settings = Depends(get_settings)):
    """
    Returns non-sensitive configuration values.

    API keys are SecretStr and are NOT exposed in this endpoint; only
    whether each one is configured.
    """
    return {
        "routing": {
            "config_path": settings.routing_config_path,
            "dispatch_timeout_seconds": settings.dispatch_timeout_seconds,
            "max_attempts": settings.max_attempts,
        },
        "generation": {
            "default_temperature": settings.default_temperature,
            "default_max_tokens": settings.default_max_tokens,
        },
        "server": {
            "host": settings.host,
            "port": settings.port,
            "debug": settings.debug,
        },
        "logging": {"level": settings.log_level},
        "api_keys_configured": {
            provider_id: settings.has_credentials(provider_id)
            for provider_id in get_adapter_registry().registered_ids()
        },
    }


# =============================================================================
# ROUTING ADMINISTRATION
# =============================================================================


@app.get(
    "/admin/routing/config",
    response_model=RoutingConfigResponse,
    summary="Get routing table",
)
async def get_routing_config():
    """Return the full provider set, global fallback flag and last update time."""
    document = get_descriptor_store().snapshot().to_document()
    return RoutingConfigResponse(**document.model_dump())


@app.put(
    "/admin/routing/config",
    response_model=RoutingConfigResponse,
    responses={
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Replace routing table",
)
def put_routing_config(payload: RoutingConfigPayload):
    """
    Replace the whole routing table.

    The update is all-or-nothing: duplicate ids are rejected with 409 and
    the previous table stays in effect. The new table is persisted and
    stamped with last_updated before it takes effect.
    """
    store = get_descriptor_store()
    try:
        snapshot = store.replace_all(
            store.build_descriptors(payload.providers),
            global_fallback=payload.global_fallback,
        )
    except DuplicateProviderError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "code": ErrorCodes.DUPLICATE_PROVIDER,
                "message": str(e),
                "field": "providers",
            },
        )
    except RoutingConfigError as e:
        logger.error(f"Failed to persist routing table: {e}")
        raise HTTPException(
            status_code=500,
            detail={"code": ErrorCodes.CONFIG_ERROR, "message": "Failed to save routing config"},
        )

    return RoutingConfigResponse(**snapshot.to_document().model_dump())


@app.post(
    "/admin/routing/reload",
    response_model=RoutingConfigResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Reload routing table from disk",
)
def reload_routing_config():
    """Re-read the persisted routing file; an invalid file leaves the current table."""
    try:
        snapshot = get_descriptor_store().reload()
    except DuplicateProviderError as e:
        raise HTTPException(
            status_code=409,
            detail={"code": ErrorCodes.DUPLICATE_PROVIDER, "message": str(e)},
        )
    except RoutingConfigError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": ErrorCodes.CONFIG_ERROR, "message": str(e)},
        )

    return RoutingConfigResponse(**snapshot.to_document().model_dump())


@app.get(
    "/admin/routing/preferences",
    response_model=PreferencesResponse,
    summary="Router-ordered provider preferences",
)
async def get_preferences():
    """Every provider, eligible or not, in the order the router ranks them."""
    prefs = get_provider_router().preferences()
    return PreferencesResponse(
        priority=prefs["priority"],
        global_fallback=prefs["global_fallback"],
        providers=[p.to_dict() for p in prefs["providers"]],
    )


# =============================================================================
# PROVIDERS
# =============================================================================


@app.get(
    "/providers/status",
    response_model=StatusResponse,
    summary="Provider eligibility",
)
async def get_provider_status():
    router = get_provider_router()
    return StatusResponse(
        providers=[s.to_dict() for s in router.status()],
        any_available=router.is_any_provider_available(),
    )


@app.get(
    "/providers/best",
    response_model=BestProviderResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Best available provider",
)
async def get_best_provider():
    """Return the provider a request would be sent to first, or 503."""
    try:
        best = get_provider_router().best_provider()
    except NoProviderAvailable:
        raise _unavailable()

    return BestProviderResponse(
        id=best.id,
        display_name=best.display_name,
        priority=best.priority,
        status=best.status,
        degraded=best.is_stub,
    )


@app.post(
    "/providers/{provider_id}/test",
    response_model=ProviderTestResponse,
    responses={404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Test a single provider",
)
async def probe_provider(
    provider_id: str,
    body: ProviderTestRequest | None = Body(default=None),
):
    """
    Call one provider directly, with no fallback and no eligibility check.

    Operator endpoint: failures carry the provider's error detail.
    """
    body = body or ProviderTestRequest()
    try:
        result = await get_dispatcher().send_direct(
            provider_id,
            GenerationRequest(prompt=body.prompt, model=body.model, max_tokens=50),
        )
    except DescriptorNotFound as e:
        raise _not_found(e)
    except AdapterError as e:
        raise HTTPException(
            status_code=502,
            detail={
                "code": ErrorCodes.PROVIDER_ERROR,
                "message": f"{provider_id} failed ({e.kind}): {e.detail}",
            },
        )

    return ProviderTestResponse(
        provider_id=provider_id,
        success=True,
        model=result.model,
        content=result.content,
        latency_ms=round(result.latency_ms, 2),
    )


# =============================================================================
# GENERATION
# =============================================================================


@app.post(
    "/generate",
    response_model=GenerateResponse,
    responses={
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Generate content",
    description="Generate content from the best available provider, falling back on failure.",
)
async def generate(request: GenerateRequest):
    """
    Main generation endpoint.

    Flow:
    1. Order eligible providers (configured tier before stub tier)
    2. Try each in turn until one succeeds
    3. Return the content tagged with the provider actually used

    Routing failures return a generic 503 with no backend details.
    """
    try:
        result = await get_dispatcher().dispatch(
            GenerationRequest(
                prompt=request.prompt,
                system_prompt=request.system_prompt,
                model=request.model,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                preferred_provider=request.preferred_provider,
                metadata=request.metadata,
            ),
            DispatchOptions(
                timeout=request.timeout_seconds,
                max_attempts=request.max_attempts,
            ),
        )
    except RoutingError as e:
        logger.error(f"Generation unavailable: {e}")
        raise _unavailable()

    return build_generate_response(result)


@app.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Get metrics",
    description="Retrieve aggregated dispatch metrics.",
)
async def get_metrics():
    """
    Return aggregated dispatch metrics.

    Includes:
    - Request counts by outcome
    - Per-provider successes and failures, with the last failure
    - Degraded response count
    - Average latency
    """
    reporter = MetricsReporter()
    return reporter.generate_report()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns a consistent error response format with the first validation
    error's details for client-side error handling.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": ErrorCodes.VALIDATION_ERROR,
                "message": first_error.get("msg", "Validation failed"),
                "field": ".".join(str(loc) for loc in first_error.get("loc", [])),
            }
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    """
    Handle HTTP exceptions with consistent format.
    """
    detail = exc.detail
    if isinstance(detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": detail})
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "HTTP_ERROR", "message": str(detail)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs the full exception for debugging and returns a generic error
    response to avoid leaking implementation details.
    """
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": ErrorCodes.INTERNAL_ERROR,
                "message": "An unexpected error occurred",
            }
        },
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "llm_relay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
