"""
Metrics Reporter for API Responses

Transforms raw aggregated dispatch metrics into the MetricsResponse
schema, computing averages and per-provider breakdowns.
"""

from datetime import datetime, timezone

from llm_relay.metrics.store import MetricsStore, get_metrics_store
from llm_relay.schemas.routing import LastFailure, MetricsResponse, ProviderMetrics


class MetricsReporter:
    """
    Generate metrics reports from aggregated data.

    Example:
        reporter = MetricsReporter()
        response = reporter.generate_report()
        return response  # Ready for JSON serialization
    """

    def __init__(self, store: MetricsStore | None = None):
        """
        Initialize the reporter.

        Args:
            store: MetricsStore instance to report from.
                   If None, uses the global singleton.
        """
        self._store = store or get_metrics_store()

    def generate_report(self) -> MetricsResponse:
        """
        Generate a complete metrics report.

        Returns:
            MetricsResponse ready for API serialization
        """
        agg = self._store.get_aggregated()

        providers: dict[str, ProviderMetrics] = {}
        for provider_id, data in agg.by_provider.items():
            last_failure = None
            if data.last_failure is not None:
                last_failure = LastFailure(
                    kind=data.last_failure.kind,
                    detail=data.last_failure.detail,
                    timestamp=datetime.fromtimestamp(
                        data.last_failure.timestamp, tz=timezone.utc
                    ),
                )

            providers[provider_id] = ProviderMetrics(
                provider_id=provider_id,
                successes=data.successes,
                failures=data.failures,
                failures_by_kind=dict(data.failures_by_kind),
                last_failure=last_failure,
                last_success_at=(
                    datetime.fromtimestamp(data.last_success_at, tz=timezone.utc)
                    if data.last_success_at is not None
                    else None
                ),
            )

        avg_latency = (
            sum(agg.latencies) / len(agg.latencies) if agg.latencies else 0.0
        )

        return MetricsResponse(
            total_requests=agg.total_requests,
            outcomes=dict(agg.outcomes),
            degraded_responses=agg.degraded_responses,
            total_attempts=agg.total_attempts,
            providers=providers,
            avg_latency_ms=round(avg_latency, 2),
        )
