"""
Router Engine - provider selection.

Turns the current routing table into a deterministic candidate order:

1. Drop ineligible providers (disabled, no credentials, offline)
2. Split the rest into a configured tier and a stub tier
3. Sort each tier by (priority, registration order)
4. Configured tier first, stub tier last

Stub providers only ever serve when no configured provider is eligible,
whatever their priority number says.

The same sort key drives the operator-facing preferences view, so what the
admin UI shows is the order the dispatcher will actually try.
"""

import logging
from dataclasses import dataclass

from llm_relay.registry.models import ProviderDescriptor
from llm_relay.registry.store import DescriptorSnapshot, DescriptorStore, get_descriptor_store
from llm_relay.router.health import CandidateOutcome, ineligibility_reason, is_eligible

logger = logging.getLogger(__name__)


class RoutingError(Exception):
    """Base exception for routing outcomes that reach the caller."""

    def __init__(self, message: str, decision=None) -> None:
        super().__init__(message)
        self.decision = decision


class NoProviderAvailable(RoutingError):
    """No eligible provider existed before any attempt was made."""

    def __init__(self, decision=None) -> None:
        super().__init__("No AI provider is available", decision)


@dataclass(frozen=True)
class ProviderPreference:
    """One row of the operator preferences view."""

    id: str
    display_name: str
    priority: int
    enabled: bool
    status: str
    eligible: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "priority": self.priority,
            "enabled": self.enabled,
            "status": self.status,
            "eligible": self.eligible,
        }


@dataclass(frozen=True)
class ProviderHealthStatus:
    """Eligibility of one provider, for health dashboards."""

    id: str
    display_name: str
    eligible: bool
    status: str
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "eligible": self.eligible,
            "status": self.status,
            "reason": self.reason,
        }


def _ranked(
    snapshot: DescriptorSnapshot,
    descriptors: list[ProviderDescriptor] | tuple[ProviderDescriptor, ...],
) -> list[ProviderDescriptor]:
    """Sort by (tier, priority, registration index); configured tier first."""
    index = {d.id: i for i, d in enumerate(snapshot.descriptors)}
    return sorted(
        descriptors,
        key=lambda d: (1 if d.is_stub else 0, d.priority, index[d.id]),
    )


def order_candidates(
    snapshot: DescriptorSnapshot,
    preferred: str | None = None,
) -> list[ProviderDescriptor]:
    """
    Compute the fallback order for one routing table.

    Args:
        snapshot: The routing table to order.
        preferred: Provider id to move to the head of its own tier.

    Returns:
        Eligible providers, configured tier before stub tier.
    """
    eligible = [d for d in snapshot.descriptors if is_eligible(d)]
    ordered = _ranked(snapshot, eligible)

    if preferred is None:
        return ordered

    chosen = next((d for d in ordered if d.id == preferred), None)
    if chosen is None:
        logger.debug(f"Preferred provider '{preferred}' is not eligible, ignoring")
        return ordered

    ordered.remove(chosen)
    insert_at = 0
    if chosen.is_stub:
        insert_at = next((i for i, d in enumerate(ordered) if d.is_stub), len(ordered))
    ordered.insert(insert_at, chosen)
    return ordered


class ProviderRouter:
    """
    Selects providers from the descriptor store.

    Every query takes one snapshot of the store up front and works on it,
    so a concurrent administrative replace cannot produce a mixed answer.

    Usage:
        router = ProviderRouter(store)
        best = router.best_provider()
        for descriptor in router.candidate_order():
            ...
    """

    def __init__(self, store: DescriptorStore | None = None) -> None:
        self._store = store

    @property
    def store(self) -> DescriptorStore:
        if self._store is None:
            self._store = get_descriptor_store()
        return self._store

    def candidate_order(self, preferred: str | None = None) -> list[ProviderDescriptor]:
        """Return the exact sequence the dispatcher will try."""
        return order_candidates(self.store.snapshot(), preferred)

    def best_provider(self, preferred: str | None = None) -> ProviderDescriptor:
        """
        Return the provider a request would be sent to first.

        Raises:
            NoProviderAvailable: If no provider is eligible.
        """
        candidates = self.candidate_order(preferred)
        if not candidates:
            raise NoProviderAvailable()
        return candidates[0]

    def is_any_provider_available(self) -> bool:
        return bool(self.candidate_order())

    def preferences(self) -> dict:
        """
        Operator view of the routing table.

        Lists every provider, eligible or not, in the order the router
        would rank them, annotated with enabled and priority.
        """
        snapshot = self.store.snapshot()
        ranked = _ranked(snapshot, snapshot.descriptors)

        return {
            "priority": [d.id for d in ranked],
            "global_fallback": snapshot.global_fallback,
            "providers": [
                ProviderPreference(
                    id=d.id,
                    display_name=d.display_name,
                    priority=d.priority,
                    enabled=d.enabled,
                    status=d.status.value,
                    eligible=is_eligible(d),
                )
                for d in ranked
            ],
        }

    def status(self) -> list[ProviderHealthStatus]:
        """Eligibility of every registered provider, in registration order."""
        result = []
        for descriptor in self.store.list_descriptors():
            reason: CandidateOutcome | None = ineligibility_reason(descriptor)
            result.append(
                ProviderHealthStatus(
                    id=descriptor.id,
                    display_name=descriptor.display_name,
                    eligible=reason is None,
                    status=descriptor.status.value,
                    reason=reason.value if reason else None,
                )
            )
        return result


_router_instance: ProviderRouter | None = None


def get_provider_router() -> ProviderRouter:
    """
    Get the global router instance.

    Returns:
        The singleton ProviderRouter bound to the global descriptor store
    """
    global _router_instance
    if _router_instance is None:
        _router_instance = ProviderRouter()
    return _router_instance


def reset_provider_router() -> None:
    """
    Reset the global router instance.

    This is primarily useful for testing to ensure a fresh
    router is created between test runs.
    """
    global _router_instance
    _router_instance = None
