"""
Factory for creating the subscription resolver.
"""

from typing import Callable, Optional

from quota_policy.backends.base import PolicyBackend
from quota_policy.notifications import Notifier

from ..ledger.client import QuotaLedgerClient
from .resolver import SubscriptionResolver


def create_subscription_module(
    backend: PolicyBackend,
    ledger: QuotaLedgerClient,
    notifier: Notifier,
    get_user_id: Callable[[], Optional[str]],
    pricing_config,
) -> dict:
    """Create the subscription resolver for one session.

    Args:
        backend: Remote backend (subscription rows and payment functions)
        ledger: Ledger client for the swipe counter
        notifier: Session notifier
        get_user_id: Returns the session's user id
        pricing_config: PricingConfig from config_manager

    Returns:
        Dictionary containing the resolver
    """
    resolver = SubscriptionResolver(
        backend,
        ledger,
        notifier,
        get_user_id,
        price_refs=pricing_config.price_refs,
    )
    return {"resolver": resolver}
