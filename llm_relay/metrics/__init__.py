"""
Metrics Module: Dispatch Outcome Storage and Reporting

Records what each dispatch did (which provider served it, which failed and
why) and turns the aggregates into the /metrics response.

Components:
    MetricsStore: Thread-safe in-memory metrics aggregation
    DispatchMetric: Individual dispatch record
    ProviderFailure: One failed provider attempt
    AggregatedMetrics: Pre-computed aggregates for reporting
    MetricsReporter: Generate MetricsResponse for API endpoints

Singleton Access:
    get_metrics_store(): Returns global MetricsStore instance
"""

# Storage
from llm_relay.metrics.store import (
    AggregatedMetrics,
    DispatchMetric,
    MetricsStore,
    ProviderFailure,
    get_metrics_store,
)

# Reporting
from llm_relay.metrics.reporter import MetricsReporter


__all__ = [
    # Storage
    "MetricsStore",
    "DispatchMetric",
    "ProviderFailure",
    "AggregatedMetrics",
    "get_metrics_store",
    # Reporting
    "MetricsReporter",
]
