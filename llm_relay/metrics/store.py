"""
Metrics Store for Dispatch Tracking

Aggregates per-request dispatch outcomes so operators can see which
providers are serving traffic and which are failing, and why. This is the
feedback channel for failures discovered by real dispatch attempts:
eligibility itself never depends on it.

Uses in-memory storage; the store is thread-safe using threading.Lock to
handle concurrent requests in FastAPI's async environment.
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProviderFailure:
    """One failed provider attempt."""

    provider_id: str
    kind: str
    detail: str
    timestamp: float


@dataclass
class DispatchMetric:
    """
    Individual dispatch record.

    Attributes:
        timestamp: Unix timestamp when the request finished
        outcome: 'success', 'exhausted', 'no_provider' or 'cancelled'
        provider_used: Provider that served the request, if any
        degraded: Whether a stub provider served the request
        attempts: Number of provider calls made
        latency_ms: Total dispatch time including failed attempts
        failures: Failed attempts in candidate order
    """

    timestamp: float
    outcome: str
    provider_used: str | None
    degraded: bool
    attempts: int
    latency_ms: float
    failures: list[ProviderFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"


@dataclass
class _ProviderAggregate:
    """Internal aggregate for per-provider metrics."""

    successes: int = 0
    failures: int = 0
    failures_by_kind: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    last_failure: ProviderFailure | None = None
    last_success_at: float | None = None


@dataclass
class AggregatedMetrics:
    """
    Aggregated metrics snapshot for reporting.

    All fields are snapshots captured at a specific moment.
    """

    total_requests: int = 0
    outcomes: dict[str, int] = field(default_factory=dict)
    degraded_responses: int = 0
    total_attempts: int = 0
    by_provider: dict[str, _ProviderAggregate] = field(default_factory=dict)
    latencies: list[float] = field(default_factory=list)


class MetricsStore:
    """
    Thread-safe in-memory dispatch metrics.

    Designed for single-process deployment.

    Example:
        store = MetricsStore()
        store.record(DispatchMetric(
            timestamp=time.time(),
            outcome="success",
            provider_used="claude",
            ...
        ))
        aggregated = store.get_aggregated()
    """

    def __init__(self, max_history: int = 10000):
        """
        Initialize the metrics store.

        Args:
            max_history: Maximum latency samples to retain.
                         Counters are preserved regardless of this limit.
        """
        self._lock = threading.Lock()
        self._max_history = max_history

        self._total_requests: int = 0
        self._outcomes: dict[str, int] = defaultdict(int)
        self._degraded: int = 0
        self._total_attempts: int = 0
        self._by_provider: dict[str, _ProviderAggregate] = defaultdict(_ProviderAggregate)
        self._latencies: list[float] = []

    def record(self, metric: DispatchMetric) -> None:
        """
        Record a dispatch outcome.

        Thread-safe. Updates the pre-computed aggregates.
        """
        with self._lock:
            self._total_requests += 1
            self._outcomes[metric.outcome] += 1
            self._total_attempts += metric.attempts
            if metric.degraded:
                self._degraded += 1

            for failure in metric.failures:
                agg = self._by_provider[failure.provider_id]
                agg.failures += 1
                agg.failures_by_kind[failure.kind] += 1
                agg.last_failure = failure

            if metric.succeeded and metric.provider_used:
                agg = self._by_provider[metric.provider_used]
                agg.successes += 1
                agg.last_success_at = metric.timestamp

            self._latencies.append(metric.latency_ms)
            if len(self._latencies) > self._max_history:
                self._latencies = self._latencies[-self._max_history :]

    def get_aggregated(self) -> AggregatedMetrics:
        """
        Get current aggregated metrics.

        Thread-safe. The returned object is a copy and safe to use
        outside the lock.
        """
        with self._lock:
            by_provider_copy = {
                provider_id: _ProviderAggregate(
                    successes=agg.successes,
                    failures=agg.failures,
                    failures_by_kind=dict(agg.failures_by_kind),
                    last_failure=agg.last_failure,
                    last_success_at=agg.last_success_at,
                )
                for provider_id, agg in self._by_provider.items()
            }

            return AggregatedMetrics(
                total_requests=self._total_requests,
                outcomes=dict(self._outcomes),
                degraded_responses=self._degraded,
                total_attempts=self._total_attempts,
                by_provider=by_provider_copy,
                latencies=list(self._latencies),
            )

    def reset(self) -> None:
        """
        Reset all metrics.

        Thread-safe. Primarily used for testing.
        """
        with self._lock:
            self._total_requests = 0
            self._outcomes.clear()
            self._degraded = 0
            self._total_attempts = 0
            self._by_provider.clear()
            self._latencies.clear()


_store: MetricsStore | None = None


def get_metrics_store() -> MetricsStore:
    """
    Get the global metrics store instance.

    Returns:
        Singleton MetricsStore instance
    """
    global _store
    if _store is None:
        _store = MetricsStore()
    return _store
