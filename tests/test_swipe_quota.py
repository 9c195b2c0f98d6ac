"""
Tests for the swipe quota manager.
"""
from unittest.mock import MagicMock

import pytest

from quota_policy.backends.memory import InMemoryBackend
from quota_policy.errors import TransientRemoteError
from quota_policy.models import SubscriptionRecord
from quota_policy.notifications import Notifier
from quota_policy.tiers import SubscriptionTier
from policy_app.ledger import QuotaLedgerClient
from policy_app.subscription import SubscriptionResolver
from policy_app.swipes import SwipeQuotaManager, UNLIMITED_DISPLAY

USER_ID = "user-1"


def make_manager(tier: str, remaining, atomic: bool = False):
    """Manager over a mocked backend and ledger, already resolved."""
    backend = MagicMock()
    backend.get_subscription.return_value = SubscriptionRecord(user_id=USER_ID, tier=tier, status="active")
    ledger = MagicMock()
    ledger.remaining_swipes.return_value = remaining
    ledger.supports_atomic_consume = atomic
    notifier = Notifier()
    notifier.start()
    resolver = SubscriptionResolver(backend, ledger, notifier, lambda: USER_ID)
    manager = SwipeQuotaManager(resolver, ledger, notifier, lambda: USER_ID, atomic=atomic)
    assert resolver.fetch_subscription_data()
    return manager, resolver, ledger, notifier


class TestCanSwipe:
    """can_swipe is a pure function of cached state."""

    @pytest.mark.parametrize("tier", ["basic", "premium", "elite"])
    def test_paid_tiers_can_always_swipe(self, tier):
        manager, _, ledger, _ = make_manager(tier, 0)
        calls_before = ledger.remaining_swipes.call_count

        assert manager.can_swipe()
        assert ledger.remaining_swipes.call_count == calls_before
        ledger.increment.assert_not_called()

    def test_free_tier_depends_on_remaining(self):
        manager, resolver, _, _ = make_manager("free", 3)
        assert manager.can_swipe()
        resolver.set_remaining_swipes(0)
        assert not manager.can_swipe()


class TestConsumeSwipe:
    """Swipe consumption state machine."""

    def test_free_with_zero_remaining_makes_no_remote_call(self):
        manager, _, ledger, notifier = make_manager("free", 0)

        assert manager.consume_swipe() is False
        ledger.increment.assert_not_called()
        titles = [n.title for n in notifier.drain()]
        assert titles == ["Daily Limit Reached"]

    def test_free_success_decrements_once(self):
        manager, resolver, ledger, _ = make_manager("free", 5)

        assert manager.consume_swipe() is True
        ledger.increment.assert_called_once_with(USER_ID, "swipe")
        assert manager.remaining_swipes == 4
        assert resolver.state.stale is True

    def test_failed_increment_leaves_count(self):
        manager, _, ledger, notifier = make_manager("free", 5)
        ledger.increment.side_effect = TransientRemoteError("increment_swipe_count", "boom")

        assert manager.consume_swipe() is False
        ledger.increment.assert_called_once()
        assert manager.remaining_swipes == 5
        assert notifier.drain() == []

    def test_premium_with_zero_remaining(self):
        manager, _, ledger, _ = make_manager("premium", 0)

        assert manager.can_swipe()
        assert manager.consume_swipe() is True
        ledger.increment.assert_called_once_with(USER_ID, "swipe")
        assert manager.display_remaining == UNLIMITED_DISPLAY
        assert manager.remaining_swipes == 0

    def test_free_with_one_remaining_then_denied(self):
        manager, _, ledger, notifier = make_manager("free", 1)

        assert manager.consume_swipe() is True
        assert manager.consume_swipe() is False
        assert ledger.increment.call_count == 1
        assert manager.display_remaining == 0
        assert [n.title for n in notifier.drain()] == ["Daily Limit Reached"]

    def test_unauthenticated_consume_denied_without_remote_call(self):
        manager, _, ledger, _ = make_manager("free", 5)
        manager.get_user_id = lambda: None

        assert manager.consume_swipe() is False
        ledger.increment.assert_not_called()

    def test_result_after_teardown_is_discarded(self):
        manager, resolver, ledger, _ = make_manager("free", 5)

        def close_during_call(user_id, action_type):
            manager.close()
            resolver.close()

        ledger.increment.side_effect = close_during_call

        manager.consume_swipe()
        assert resolver.state.remaining_swipes == 5
        assert resolver.state.stale is False

    def test_closed_manager_returns_false(self):
        manager, _, ledger, _ = make_manager("free", 5)
        manager.close()

        assert manager.consume_swipe() is False
        assert manager.refresh() is False
        ledger.increment.assert_not_called()

    def test_atomic_denial_zeroes_cache(self):
        manager, _, ledger, notifier = make_manager("free", 2, atomic=True)
        ledger.try_consume.return_value = False

        assert manager.consume_swipe() is False
        ledger.try_consume.assert_called_once_with(USER_ID, "swipe")
        ledger.increment.assert_not_called()
        assert manager.remaining_swipes == 0
        assert [n.title for n in notifier.drain()] == ["Daily Limit Reached"]

    def test_atomic_success_decrements(self):
        manager, _, ledger, _ = make_manager("free", 2, atomic=True)
        ledger.try_consume.return_value = True

        assert manager.consume_swipe() is True
        assert manager.remaining_swipes == 1


class TestRefresh:
    """Refreshing the allowance from the server."""

    def test_null_server_value_becomes_zero(self):
        manager, _, ledger, _ = make_manager("free", 5)
        ledger.remaining_swipes.return_value = None

        assert manager.refresh() is True
        assert manager.remaining_swipes == 0

    def test_refresh_failure_keeps_last_value(self):
        manager, _, ledger, _ = make_manager("free", 5)
        ledger.remaining_swipes.side_effect = TransientRemoteError("check_daily_swipe_limit")

        assert manager.refresh() is False
        assert manager.remaining_swipes == 5
        assert manager.is_loading is False

    def test_tier_change_triggers_refresh(self):
        manager, resolver, ledger, _ = make_manager("free", 5)
        resolver.backend.get_subscription.return_value = SubscriptionRecord(tier="elite", status="active")
        calls_before = ledger.remaining_swipes.call_count

        resolver.fetch_subscription_data()

        # one call from the refetch, one from the tier change listener
        assert ledger.remaining_swipes.call_count == calls_before + 2
        assert manager.is_premium


class TestSwipesAgainstMemoryBackend:
    """End to end over the in-memory backend."""

    def test_daily_limit_is_enforced(self):
        backend = InMemoryBackend(free_daily_limit=2)
        ledger = QuotaLedgerClient(backend)
        notifier = Notifier()
        notifier.start()
        resolver = SubscriptionResolver(backend, ledger, notifier, lambda: USER_ID)
        manager = SwipeQuotaManager(resolver, ledger, notifier, lambda: USER_ID)
        resolver.fetch_subscription_data()

        assert manager.remaining_swipes == 2
        assert manager.consume_swipe()
        assert manager.consume_swipe()
        assert not manager.consume_swipe()
        assert backend.swipes_used_today(USER_ID) == 2

        manager.refresh()
        assert manager.remaining_swipes == 0
        assert resolver.tier is SubscriptionTier.FREE
