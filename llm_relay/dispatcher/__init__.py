"""
Dispatcher module: sequential cross-provider fallback.

Sends a generation request to providers in router order until one
succeeds, recording every skip and failure in a RoutingDecision.

Key exports:
- Dispatcher: Fallback executor bound to a router, adapters and metrics
- DispatchOptions: Per-call timeout and attempt limits
- DispatchResult: The served response, tagged with provider and degraded flag
- RoutingDecision / CandidateRecord: Per-request routing record
- AllProvidersExhausted: Every candidate was skipped or failed
- dispatch(): Dispatch through the global dispatcher
"""

from llm_relay.dispatcher.handlers import (
    # Data classes
    CandidateRecord,
    RoutingDecision,
    DispatchOptions,
    DispatchResult,
    # Errors
    AllProvidersExhausted,
    # Dispatch
    Dispatcher,
    dispatch,
    get_dispatcher,
    reset_dispatcher,
)

__all__ = [
    # Data classes
    "CandidateRecord",
    "RoutingDecision",
    "DispatchOptions",
    "DispatchResult",
    # Errors
    "AllProvidersExhausted",
    # Dispatch
    "Dispatcher",
    "dispatch",
    "get_dispatcher",
    "reset_dispatcher",
]
