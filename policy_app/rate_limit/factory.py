"""
Factory for creating rate limiting components.
"""

from typing import Callable, Optional

from quota_policy.notifications import Notifier

from ..ledger.client import DISCOVERY_ACTION, QuotaLedgerClient
from .limiter import DiscoveryRateLimiter, RateLimiter
from .models import OnError, RateLimitPolicy


def policy_from_rule(rule, audit_action: Optional[str] = None) -> RateLimitPolicy:
    """Convert a config_manager RateLimitRule into a RateLimitPolicy."""
    return RateLimitPolicy(
        max_attempts=rule.max_attempts,
        window_minutes=rule.window_minutes,
        on_error=OnError(rule.on_error),
        audit_action=rule.audit_action or audit_action,
    )


def create_rate_limit_module(
    ledger: QuotaLedgerClient,
    notifier: Notifier,
    get_user_id: Callable[[], Optional[str]],
    rate_limit_config,
) -> dict:
    """
    Create the discovery and generic rate limiters for one session.

    Args:
        ledger: Ledger client shared by the session
        notifier: Session notifier
        get_user_id: Returns the session's user id, or None once signed out
        rate_limit_config: RateLimitConfig from config_manager

    Returns:
        Dictionary with:
        - discovery: DiscoveryRateLimiter instance
        - generic: RateLimiter instance
    """
    discovery = DiscoveryRateLimiter(
        ledger,
        notifier,
        get_user_id,
        policy=policy_from_rule(rate_limit_config.discovery, audit_action=DISCOVERY_ACTION),
    )

    generic = RateLimiter(
        ledger,
        notifier,
        get_user_id,
        default_policy=policy_from_rule(rate_limit_config.generic),
        policies={
            name: policy_from_rule(rule)
            for name, rule in rate_limit_config.actions.items()
        },
    )

    return {
        "discovery": discovery,
        "generic": generic,
    }
