"""
Factory for creating the swipe quota manager.
"""

from typing import Callable, Optional

from quota_policy.notifications import Notifier

from ..ledger.client import QuotaLedgerClient
from ..subscription.resolver import SubscriptionResolver
from .manager import SwipeQuotaManager


def create_swipes_module(
    resolver: SubscriptionResolver,
    ledger: QuotaLedgerClient,
    notifier: Notifier,
    get_user_id: Callable[[], Optional[str]],
    swipe_config,
    backend_config,
) -> dict:
    """Create the swipe quota manager for one session.

    Consumption uses the backend's atomic check-and-increment when one is
    configured, otherwise the check-then-increment pair.

    Returns:
        Dictionary containing the manager
    """
    atomic = ledger.supports_atomic_consume and bool(backend_config.atomic_consume_rpc)

    manager = SwipeQuotaManager(
        resolver,
        ledger,
        notifier,
        get_user_id,
        unlimited_display=swipe_config.unlimited_display,
        atomic=atomic,
    )
    return {"manager": manager}
