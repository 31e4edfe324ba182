"""
Router module: provider eligibility and selection.

This module contains:
- health.py: the single eligibility rule and skip reasons
- engine.py: candidate ordering, best-provider and status queries

Public API:
- is_eligible(): Whether a provider can be selected
- ineligibility_reason(): Why it cannot
- CandidateOutcome: Per-candidate outcome in a routing decision
- ProviderRouter: Candidate order, best provider, preferences, status
- NoProviderAvailable: Raised when nothing is eligible
- get_provider_router(): Get the singleton router
"""

from llm_relay.router.health import (
    CandidateOutcome,
    ineligibility_reason,
    is_eligible,
)
from llm_relay.router.engine import (
    NoProviderAvailable,
    ProviderHealthStatus,
    ProviderPreference,
    ProviderRouter,
    RoutingError,
    get_provider_router,
    order_candidates,
    reset_provider_router,
)

__all__ = [
    "CandidateOutcome",
    "ineligibility_reason",
    "is_eligible",
    "NoProviderAvailable",
    "ProviderHealthStatus",
    "ProviderPreference",
    "ProviderRouter",
    "RoutingError",
    "get_provider_router",
    "order_candidates",
    "reset_provider_router",
]
