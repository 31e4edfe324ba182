"""
Dispatcher Handlers - fallback execution across providers.

This module sends a generation request to providers one at a time, in the
router's candidate order, until one succeeds:

- Each candidate is re-checked against the current routing table before
  it is called, so a provider disabled mid-request is skipped.
- Each call is bounded by a timeout; a timeout is just another failure
  and the next candidate is tried.
- The first success is returned immediately. No other provider is called
  after it, so a caller never gets two answers or two bills.
- A provider is never retried within the same request.
- If the caller cancels, the in-flight call is cancelled and the chain
  stops.

Only two failures leave this module: NoProviderAvailable (nothing was
eligible) and AllProvidersExhausted (everything eligible failed). Both
carry the RoutingDecision with the per-candidate breakdown.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from llm_relay.adapters.base import (
    AdapterError,
    AdapterResponse,
    AdapterTimeout,
    BackendError,
    GenerationRequest,
    RateLimited,
)
from llm_relay.adapters.registry import AdapterRegistry, get_adapter_registry
from llm_relay.config import Settings, get_settings
from llm_relay.metrics.store import (
    DispatchMetric,
    MetricsStore,
    ProviderFailure,
    get_metrics_store,
)
from llm_relay.registry.models import ProviderDescriptor
from llm_relay.registry.store import DescriptorSnapshot
from llm_relay.router.engine import (
    NoProviderAvailable,
    ProviderRouter,
    RoutingError,
    get_provider_router,
    order_candidates,
)
from llm_relay.router.health import CandidateOutcome, ineligibility_reason

logger = logging.getLogger(__name__)


def _failure_detail(error: AdapterError) -> str:
    if isinstance(error, RateLimited) and error.retry_after is not None:
        return f"{error.detail} (retry after {error.retry_after:g}s)"
    return error.detail


@dataclass
class CandidateRecord:
    """
    What happened to one provider during a request.

    Attributes:
        provider_id: Provider considered
        outcome: Skip reason or attempt result
        failure_kind: Adapter failure kind for attempted-failure
        detail: Failure detail for operators
        latency_ms: Time spent on the attempt (0 for skips)
        timestamp: Unix time the outcome was recorded
    """

    provider_id: str
    outcome: CandidateOutcome
    failure_kind: str | None = None
    detail: str | None = None
    latency_ms: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "provider_id": self.provider_id,
            "outcome": self.outcome.value,
            "failure_kind": self.failure_kind,
            "detail": self.detail,
            "latency_ms": round(self.latency_ms, 2),
            "timestamp": self.timestamp,
        }


@dataclass
class RoutingDecision:
    """
    Per-request routing record, used for logging and metrics only.

    Attributes:
        candidates: Provider ids in the order they were to be tried
        chosen: Provider that served the request, if any
        records: Outcomes in the order they happened
    """

    candidates: list[str] = field(default_factory=list)
    chosen: str | None = None
    records: list[CandidateRecord] = field(default_factory=list)

    def record(self, provider_id: str, outcome: CandidateOutcome, **kwargs: Any) -> CandidateRecord:
        entry = CandidateRecord(provider_id=provider_id, outcome=outcome, **kwargs)
        self.records.append(entry)
        return entry

    @property
    def failures(self) -> list[CandidateRecord]:
        return [r for r in self.records if r.outcome == CandidateOutcome.ATTEMPTED_FAILURE]

    @property
    def attempts(self) -> int:
        return sum(1 for r in self.records if not r.outcome.is_skip)

    def to_dict(self) -> dict:
        return {
            "candidates": list(self.candidates),
            "chosen": self.chosen,
            "outcomes": [r.to_dict() for r in self.records],
        }


class AllProvidersExhausted(RoutingError):
    """Every candidate was skipped or failed."""

    def __init__(self, decision: RoutingDecision) -> None:
        super().__init__(
            f"All AI providers failed after {decision.attempts} attempt(s)", decision
        )


@dataclass
class DispatchOptions:
    """
    Per-call dispatch limits.

    Attributes:
        timeout: Seconds allowed for each provider call (default: settings)
        max_attempts: Provider calls allowed (default: every candidate, or
            one when global fallback is off)
    """

    timeout: float | None = None
    max_attempts: int | None = None


@dataclass
class DispatchResult:
    """
    A served generation request.

    Attributes:
        content: Generated text
        model: Model that produced it
        provider_used: Provider that served the request
        degraded: True iff the serving provider is a stub
        latency_ms: Total time including failed attempts
        decision: The routing record for this request
        metadata: Caller metadata echoed back
    """

    content: str
    model: str
    provider_used: str
    degraded: bool
    latency_ms: float
    decision: RoutingDecision
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def attempts(self) -> int:
        return self.decision.attempts


class Dispatcher:
    """
    Executes requests against providers with cross-provider fallback.

    Usage:
        dispatcher = Dispatcher()
        result = await dispatcher.dispatch(GenerationRequest(prompt="..."))
        print(result.provider_used, result.degraded)
    """

    def __init__(
        self,
        router: ProviderRouter | None = None,
        adapters: AdapterRegistry | None = None,
        metrics: MetricsStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._router = router
        self._adapters = adapters
        self._metrics = metrics
        self._settings = settings

    @property
    def router(self) -> ProviderRouter:
        return self._router or get_provider_router()

    @property
    def adapters(self) -> AdapterRegistry:
        return self._adapters or get_adapter_registry()

    @property
    def metrics(self) -> MetricsStore:
        return self._metrics or get_metrics_store()

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def _attempt_budget(
        self, options: DispatchOptions, snapshot: DescriptorSnapshot, candidates: int
    ) -> int:
        if options.max_attempts is not None:
            return options.max_attempts
        if not snapshot.global_fallback:
            return 1
        if self.settings.max_attempts is not None:
            return self.settings.max_attempts
        return candidates

    async def _call(
        self,
        descriptor: ProviderDescriptor,
        request: GenerationRequest,
        timeout: float,
    ) -> AdapterResponse:
        """
        One bounded provider call; every failure comes back as AdapterError.

        asyncio.CancelledError propagates to the caller.
        """
        try:
            adapter = self.adapters.resolve(descriptor)
            return await asyncio.wait_for(adapter.send(request, descriptor), timeout)
        except AdapterError as e:
            e.provider_id = e.provider_id or descriptor.id
            raise
        except asyncio.TimeoutError as e:
            raise AdapterTimeout(
                f"{descriptor.id} did not respond within {timeout}s", descriptor.id
            ) from e
        except Exception as e:
            logger.exception(f"Unexpected error from adapter '{descriptor.id}'")
            raise BackendError(f"Unexpected adapter error: {e}", descriptor.id) from e

    def _record_metric(
        self,
        outcome: str,
        decision: RoutingDecision,
        start_time: float,
        degraded: bool = False,
    ) -> None:
        self.metrics.record(
            DispatchMetric(
                timestamp=time.time(),
                outcome=outcome,
                provider_used=decision.chosen,
                degraded=degraded,
                attempts=decision.attempts,
                latency_ms=(time.perf_counter() - start_time) * 1000,
                failures=[
                    ProviderFailure(
                        provider_id=r.provider_id,
                        kind=r.failure_kind or "backend_error",
                        detail=r.detail or "",
                        timestamp=r.timestamp,
                    )
                    for r in decision.failures
                ],
            )
        )

    async def dispatch(
        self,
        request: GenerationRequest,
        options: DispatchOptions | None = None,
    ) -> DispatchResult:
        """
        Serve a request from the first provider that succeeds.

        Args:
            request: The generation request.
            options: Per-call timeout and attempt limits.

        Returns:
            DispatchResult tagged with the provider actually used.

        Raises:
            NoProviderAvailable: If no provider was eligible.
            AllProvidersExhausted: If every candidate was skipped or failed.
        """
        options = options or DispatchOptions()
        timeout = options.timeout or self.settings.dispatch_timeout_seconds
        start_time = time.perf_counter()

        # One table for both the candidate set and the fallback flag.
        snapshot = self.router.store.snapshot()
        candidates = order_candidates(snapshot, request.preferred_provider)
        decision = RoutingDecision(candidates=[c.id for c in candidates])

        if not candidates:
            for descriptor in snapshot.descriptors:
                reason = ineligibility_reason(descriptor)
                if reason is not None:
                    decision.record(descriptor.id, reason)
            logger.warning("No eligible AI provider for request")
            self._record_metric("no_provider", decision, start_time)
            raise NoProviderAvailable(decision)

        budget = self._attempt_budget(options, snapshot, len(candidates))
        attempts = 0
        logger.debug(f"Dispatching: candidates={decision.candidates}, budget={budget}")

        try:
            for candidate in candidates:
                if attempts >= budget:
                    break

                # The table may have been replaced since candidate_order().
                current = self.router.store.snapshot().get(candidate.id)
                if current is None:
                    decision.record(candidate.id, CandidateOutcome.SKIPPED_REMOVED)
                    continue
                reason = ineligibility_reason(current)
                if reason is not None:
                    decision.record(candidate.id, reason)
                    continue

                attempts += 1
                attempt_start = time.perf_counter()
                try:
                    response = await self._call(current, request, timeout)
                except AdapterError as e:
                    detail = _failure_detail(e)
                    decision.record(
                        current.id,
                        CandidateOutcome.ATTEMPTED_FAILURE,
                        failure_kind=e.kind,
                        detail=detail,
                        latency_ms=(time.perf_counter() - attempt_start) * 1000,
                    )
                    logger.warning(f"Provider '{current.id}' failed ({e.kind}): {detail}")
                    continue

                decision.record(
                    current.id,
                    CandidateOutcome.ATTEMPTED_SUCCESS,
                    latency_ms=response.latency_ms,
                )
                decision.chosen = current.id
                degraded = current.is_stub
                self._record_metric("success", decision, start_time, degraded=degraded)

                latency_ms = (time.perf_counter() - start_time) * 1000
                logger.info(
                    f"Dispatch served: provider={current.id}, attempts={decision.attempts}, "
                    f"latency={latency_ms:.0f}ms, degraded={degraded}"
                )
                return DispatchResult(
                    content=response.content,
                    model=response.model,
                    provider_used=current.id,
                    degraded=degraded,
                    latency_ms=latency_ms,
                    decision=decision,
                    metadata=dict(request.metadata),
                )
        except asyncio.CancelledError:
            logger.info(f"Dispatch cancelled after {decision.attempts} attempt(s)")
            self._record_metric("cancelled", decision, start_time)
            raise

        logger.error(
            f"All providers exhausted: "
            f"{[(r.provider_id, r.outcome.value, r.failure_kind) for r in decision.records]}"
        )
        self._record_metric("exhausted", decision, start_time)
        raise AllProvidersExhausted(decision)

    async def send_direct(
        self,
        provider_id: str,
        request: GenerationRequest,
        timeout: float | None = None,
    ) -> DispatchResult:
        """
        Call one provider with no fallback, bypassing eligibility.

        Used by operators to test a single backend.

        Raises:
            DescriptorNotFound: If the provider is not registered.
            AdapterError: The provider's typed failure.
        """
        descriptor = self.router.store.get_descriptor(provider_id)
        timeout = timeout or self.settings.dispatch_timeout_seconds
        start_time = time.perf_counter()
        decision = RoutingDecision(candidates=[provider_id])

        try:
            response = await self._call(descriptor, request, timeout)
        except AdapterError as e:
            detail = _failure_detail(e)
            decision.record(
                provider_id,
                CandidateOutcome.ATTEMPTED_FAILURE,
                failure_kind=e.kind,
                detail=detail,
            )
            logger.warning(f"Direct test of '{provider_id}' failed ({e.kind}): {detail}")
            raise

        decision.record(
            provider_id, CandidateOutcome.ATTEMPTED_SUCCESS, latency_ms=response.latency_ms
        )
        decision.chosen = provider_id
        return DispatchResult(
            content=response.content,
            model=response.model,
            provider_used=provider_id,
            degraded=descriptor.is_stub,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            decision=decision,
            metadata=dict(request.metadata),
        )


_dispatcher: Dispatcher | None = None


def get_dispatcher() -> Dispatcher:
    """
    Get the global dispatcher instance.

    Returns:
        The singleton Dispatcher wired to the global router, adapters
        and metrics store.
    """
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = Dispatcher()
    return _dispatcher


def reset_dispatcher() -> None:
    global _dispatcher
    _dispatcher = None


async def dispatch(
    request: GenerationRequest,
    options: DispatchOptions | None = None,
) -> DispatchResult:
    """
    Dispatch a request through the global dispatcher.

    This is the main entry point for callers that do not need a custom
    router or adapter registry.
    """
    return await get_dispatcher().dispatch(request, options)
