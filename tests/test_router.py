"""
Router and Eligibility Tests

Validates the eligibility rule and the candidate order built from it.

Test Categories:
1. TestEligibility - is_eligible() / ineligibility_reason()
2. TestCandidateOrder - tiering, priority and tie-breaking
3. TestPreferredProvider - preferred provider within its tier
4. TestBestProvider - best_provider() and NoProviderAvailable
5. TestOperatorViews - preferences() and status()
"""

import pytest

from llm_relay.router import (
    CandidateOutcome,
    NoProviderAvailable,
    ProviderRouter,
    get_provider_router,
    ineligibility_reason,
    is_eligible,
)


class TestEligibility:
    """The single eligibility rule."""

    def test_configured_enabled_credentialed_is_eligible(self, make_descriptor):
        assert is_eligible(make_descriptor("a"))

    def test_stub_is_eligible(self, make_descriptor):
        assert is_eligible(make_descriptor("a", status="stub"))

    def test_disabled_is_ineligible(self, make_descriptor):
        d = make_descriptor("a", enabled=False)

        assert not is_eligible(d)
        assert ineligibility_reason(d) == CandidateOutcome.SKIPPED_DISABLED

    def test_no_credentials_is_ineligible(self, make_descriptor):
        d = make_descriptor("a", has_credentials=False)

        assert ineligibility_reason(d) == CandidateOutcome.SKIPPED_NO_CREDENTIALS

    def test_offline_is_ineligible(self, make_descriptor):
        d = make_descriptor("a", status="offline")

        assert ineligibility_reason(d) == CandidateOutcome.SKIPPED_OFFLINE

    def test_reasons_checked_in_order(self, make_descriptor):
        d = make_descriptor("a", enabled=False, has_credentials=False, status="offline")

        assert ineligibility_reason(d) == CandidateOutcome.SKIPPED_DISABLED

    def test_skip_outcomes(self):
        assert CandidateOutcome.SKIPPED_REMOVED.is_skip
        assert not CandidateOutcome.ATTEMPTED_FAILURE.is_skip


class TestCandidateOrder:
    """candidate_order() tiering and sorting."""

    def test_sorted_by_priority(self, make_store):
        router = ProviderRouter(make_store([("c", 3), ("a", 1), ("b", 2)]))

        assert [d.id for d in router.candidate_order()] == ["a", "b", "c"]

    def test_ties_broken_by_registration_order(self, make_store):
        router = ProviderRouter(make_store([("x", 1), ("y", 1), ("z", 1)]))

        assert [d.id for d in router.candidate_order()] == ["x", "y", "z"]

    def test_stub_after_configured_regardless_of_priority(self, make_store):
        router = ProviderRouter(make_store([("s", 0, "stub"), ("a", 5), ("b", 9)]))

        assert [d.id for d in router.candidate_order()] == ["a", "b", "s"]

    def test_ineligible_excluded(self, make_store, make_descriptor):
        store = make_store(
            [
                make_descriptor("a", priority=1, enabled=False),
                make_descriptor("b", priority=2),
                make_descriptor("c", priority=1, status="stub"),
            ]
        )

        assert [d.id for d in ProviderRouter(store).candidate_order()] == ["b", "c"]

    def test_offline_never_returned(self, make_store):
        router = ProviderRouter(make_store([("a", 1, "offline"), ("b", 2)]))

        assert [d.id for d in router.candidate_order()] == ["b"]

    def test_empty_when_nothing_eligible(self, make_store, make_descriptor):
        store = make_store([make_descriptor("a", enabled=False)])

        assert ProviderRouter(store).candidate_order() == []

    def test_order_is_deterministic(self, make_store):
        router = ProviderRouter(make_store([("b", 2), ("a", 2), ("s", 1, "stub"), ("c", 1)]))

        first = [d.id for d in router.candidate_order()]
        for _ in range(10):
            assert [d.id for d in router.candidate_order()] == first
        assert first == ["c", "b", "a", "s"]


class TestPreferredProvider:
    """Preferred provider moves to the head of its own tier only."""

    def test_preferred_configured_goes_first(self, make_store):
        router = ProviderRouter(make_store([("a", 1), ("b", 2), ("c", 3)]))

        assert [d.id for d in router.candidate_order("c")] == ["c", "a", "b"]

    def test_preferred_stub_stays_behind_configured(self, make_store):
        router = ProviderRouter(
            make_store([("a", 1), ("s1", 1, "stub"), ("s2", 2, "stub"), ("b", 2)])
        )

        assert [d.id for d in router.candidate_order("s2")] == ["a", "b", "s2", "s1"]

    def test_ineligible_preference_ignored(self, make_store, make_descriptor):
        store = make_store(
            [make_descriptor("a", priority=1), make_descriptor("b", priority=2, enabled=False)]
        )

        assert [d.id for d in ProviderRouter(store).candidate_order("b")] == ["a"]

    def test_unknown_preference_ignored(self, make_store):
        router = ProviderRouter(make_store([("a", 1), ("b", 2)]))

        assert [d.id for d in router.candidate_order("nope")] == ["a", "b"]


class TestBestProvider:
    """best_provider() and availability."""

    def test_best_is_head_of_order(self, make_store):
        router = ProviderRouter(make_store([("b", 2), ("a", 1)]))

        assert router.best_provider().id == "a"

    def test_never_stub_when_configured_eligible(self, make_store):
        router = ProviderRouter(make_store([("s", 0, "stub"), ("a", 10)]))

        assert router.best_provider().id == "a"

    def test_stub_returned_when_only_stubs(self, make_store):
        router = ProviderRouter(make_store([("s", 3, "stub"), ("a", 1, "offline")]))

        best = router.best_provider()

        assert best.id == "s"
        assert best.is_stub

    def test_all_disabled_raises(self, make_store, make_descriptor):
        store = make_store(
            [make_descriptor("a", enabled=False), make_descriptor("b", enabled=False)]
        )
        router = ProviderRouter(store)

        with pytest.raises(NoProviderAvailable):
            router.best_provider()
        assert router.is_any_provider_available() is False

    def test_empty_registry_raises(self, make_store):
        with pytest.raises(NoProviderAvailable):
            ProviderRouter(make_store([])).best_provider()

    def test_sees_replaced_table(self, make_store, make_descriptor):
        store = make_store([("a", 1)])
        router = ProviderRouter(store)

        store.replace_all([make_descriptor("b", priority=1)])

        assert router.best_provider().id == "b"

    def test_global_router_uses_default_providers(self):
        assert get_provider_router().best_provider().id == "claude"


class TestOperatorViews:
    """preferences() and status()."""

    def test_preferences_lists_every_provider_in_rank_order(self, make_store, make_descriptor):
        store = make_store(
            [
                make_descriptor("s", priority=0, status="stub"),
                make_descriptor("b", priority=2, enabled=False),
                make_descriptor("a", priority=1),
            ]
        )

        prefs = ProviderRouter(store).preferences()

        assert prefs["priority"] == ["a", "b", "s"]
        assert prefs["global_fallback"] is True
        by_id = {p.id: p for p in prefs["providers"]}
        assert by_id["b"].enabled is False
        assert by_id["b"].eligible is False
        assert by_id["a"].priority == 1

    def test_status_in_registration_order_with_reasons(self, make_store, make_descriptor):
        store = make_store(
            [
                make_descriptor("b", priority=2, has_credentials=False),
                make_descriptor("a", priority=1),
                make_descriptor("o", priority=3, status="offline"),
            ]
        )

        status = ProviderRouter(store).status()

        assert [s.id for s in status] == ["b", "a", "o"]
        assert status[0].eligible is False
        assert status[0].reason == "skipped-no-credentials"
        assert status[1].eligible is True
        assert status[1].reason is None
        assert status[2].to_dict()["reason"] == "skipped-offline"
