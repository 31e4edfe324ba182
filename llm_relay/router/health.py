"""
Health Prober - provider eligibility.

Eligibility is a pure function of descriptor state: no network probing on
the hot path. Failures are discovered by real dispatch attempts and show up
in the dispatch metrics, not here.

The router, the dispatcher's per-candidate re-check, and the status query
all call these functions so there is exactly one eligibility rule.
"""

from enum import Enum

from llm_relay.registry.models import ProviderDescriptor, ProviderStatus


class CandidateOutcome(str, Enum):
    """What happened to one provider during a routing decision."""

    SKIPPED_DISABLED = "skipped-disabled"
    SKIPPED_NO_CREDENTIALS = "skipped-no-credentials"
    SKIPPED_OFFLINE = "skipped-offline"
    SKIPPED_REMOVED = "skipped-removed"
    ATTEMPTED_SUCCESS = "attempted-success"
    ATTEMPTED_FAILURE = "attempted-failure"

    @property
    def is_skip(self) -> bool:
        return self.value.startswith("skipped-")


def ineligibility_reason(descriptor: ProviderDescriptor) -> CandidateOutcome | None:
    """
    Explain why a provider cannot be selected.

    Checks are ordered: disabled, then missing credentials, then offline.

    Args:
        descriptor: Provider to check.

    Returns:
        The skip outcome, or None when the provider is eligible.
    """
    if not descriptor.enabled:
        return CandidateOutcome.SKIPPED_DISABLED
    if not descriptor.has_credentials:
        return CandidateOutcome.SKIPPED_NO_CREDENTIALS
    if descriptor.status == ProviderStatus.OFFLINE:
        return CandidateOutcome.SKIPPED_OFFLINE
    return None


def is_eligible(descriptor: ProviderDescriptor) -> bool:
    """A provider is eligible iff enabled, credentialed, and not offline."""
    return ineligibility_reason(descriptor) is None
