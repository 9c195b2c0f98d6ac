"""
Basic import tests to verify the core functionality.
"""

import pytest


def test_quota_policy_imports():
    """Test that the core library exports can be imported."""
    from quota_policy import (
        SubscriptionTier,
        has_access,
        create_backend,
        Notifier,
        SessionComponent,
        TransientRemoteError,
        setup_logging,
    )

    assert callable(has_access)
    assert callable(create_backend)
    assert callable(setup_logging)
    assert issubclass(TransientRemoteError, Exception)
    assert SubscriptionTier("elite").is_paid
    assert Notifier().is_running is False
    assert SessionComponent().is_closed is False


def test_policy_app_imports():
    """Test that every component module can be imported."""
    from policy_app.ledger import QuotaLedgerClient
    from policy_app.rate_limit import RateLimiter, DiscoveryRateLimiter
    from policy_app.swipes import SwipeQuotaManager
    from policy_app.subscription import SubscriptionResolver
    from policy_app.access_gate import AccessGate
    from policy_app.daily_rewards import DailyRewardService
    from policy_app.user_session import PolicySession, SessionRegistry
    from policy_app.main import create_app

    assert callable(create_app)
    for cls in (QuotaLedgerClient, RateLimiter, DiscoveryRateLimiter, SwipeQuotaManager,
                SubscriptionResolver, AccessGate, DailyRewardService, PolicySession, SessionRegistry):
        assert isinstance(cls, type)


def test_error_taxonomy():
    """Test the error hierarchy and remote wrapping."""
    from quota_policy.errors import (
        PolicyError,
        QuotaExceeded,
        UnauthenticatedAccess,
        PersistenceConflict,
        TransientRemoteError,
        remote_operation,
    )

    for cls in (QuotaExceeded, UnauthenticatedAccess, PersistenceConflict, TransientRemoteError):
        assert issubclass(cls, PolicyError)

    with pytest.raises(TransientRemoteError) as exc:
        with remote_operation("get_subscription"):
            raise OSError("network down")
    assert exc.value.operation == "get_subscription"
    assert "network down" in str(exc.value)

    with pytest.raises(PersistenceConflict):
        with remote_operation("get_or_create_daily_reward"):
            raise PersistenceConflict("daily_rewards", "u1/2026-10-19")

    assert UnauthenticatedAccess().message == "Login required"
    assert QuotaExceeded("swipe", "Daily limit").action == "swipe"
