"""
Resolves the current user's subscription tier and daily swipe quota.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from threading import Lock
from typing import Callable, Dict, List, Optional

from quota_policy.backends.base import PolicyBackend
from quota_policy.errors import PolicyError, remote_operation
from quota_policy.lifecycle import SessionComponent
from quota_policy.notifications import Notifier
from quota_policy.tiers import SubscriptionTier

from ..ledger.client import QuotaLedgerClient
from .models import SubscriptionState

logger = logging.getLogger(__name__)

TierListener = Callable[[SubscriptionTier, SubscriptionTier], None]


class SubscriptionResolver(SessionComponent):
    """
    Owns the one ``SubscriptionState`` of a user session.

    The state is a cache of the backend's subscription row and swipe counter.
    It changes only through ``fetch_subscription_data`` (full replacement) or
    ``apply_swipe_consumed`` after a confirmed swipe.
    """

    def __init__(
        self,
        backend: PolicyBackend,
        ledger: QuotaLedgerClient,
        notifier: Notifier,
        get_user_id: Callable[[], Optional[str]],
        price_refs: Optional[Dict[str, str]] = None,
    ):
        super().__init__()
        self.backend = backend
        self.ledger = ledger
        self.notifier = notifier
        self.get_user_id = get_user_id
        self.price_refs = dict(price_refs or {})
        self._state = SubscriptionState()
        self._lock = Lock()
        self._listeners: List[TierListener] = []

    @property
    def state(self) -> SubscriptionState:
        with self._lock:
            return self._state.copy()

    @property
    def tier(self) -> SubscriptionTier:
        return self._state.tier

    @property
    def stale(self) -> bool:
        return self._state.stale

    def on_tier_change(self, listener: TierListener) -> None:
        """Call ``listener(old_tier, new_tier)`` whenever a refetch changes the tier."""
        self._listeners.append(listener)

    def fetch_subscription_data(self) -> bool:
        """
        Refetch the subscription row and remaining swipes in parallel and
        replace the cached state.

        A missing row resolves to free/active. If either fetch fails the
        previous state is kept.

        Returns:
            True if the state was replaced
        """
        user_id = self.get_user_id()
        if not user_id or self.is_closed:
            return False

        with self._lock:
            self._state = self._state.copy(loading=True)

        try:
            with ThreadPoolExecutor(max_workers=2) as executor:
                record_future = executor.submit(self._fetch_record, user_id)
                remaining_future = executor.submit(self.ledger.remaining_swipes, user_id)
                record = record_future.result()
                remaining = remaining_future.result()
        except PolicyError as e:
            logger.error(f"Failed to fetch subscription data for {user_id}: {e}")
            if not self._discard_if_closed("fetch_subscription_data"):
                with self._lock:
                    self._state = self._state.copy(loading=False)
            return False

        if self._discard_if_closed("fetch_subscription_data"):
            return False

        new_state = SubscriptionState(
            tier=SubscriptionTier.parse(record.tier if record else None),
            status=(record.status if record and record.status else "active"),
            period_end=record.current_period_end if record else None,
            remaining_swipes=max(0, remaining or 0),
            loading=False,
            stale=False,
        )
        with self._lock:
            old_tier = self._state.tier
            self._state = new_state

        logger.info(
            f"Resolved subscription for {user_id}: {new_state.tier.value}/{new_state.status}, "
            f"{new_state.remaining_swipes} swipes left"
        )
        if new_state.tier is not old_tier:
            self._notify_tier_change(old_tier, new_state.tier)
        return True

    def set_remaining_swipes(self, remaining: Optional[int]) -> None:
        """Replace the cached swipe count with a server value (None counts as 0)."""
        if self._discard_if_closed("set_remaining_swipes"):
            return
        with self._lock:
            self._state = self._state.copy(remaining_swipes=max(0, remaining or 0))

    def apply_swipe_consumed(self) -> None:
        """Lower the cached count by one after the server confirmed a swipe."""
        if self._discard_if_closed("apply_swipe_consumed"):
            return
        with self._lock:
            self._state = self._state.copy(
                remaining_swipes=max(0, self._state.remaining_swipes - 1),
                stale=True,
            )

    def mark_stale(self) -> None:
        """Flag the cache as out of date until the next refetch."""
        with self._lock:
            self._state = self._state.copy(stale=True)

    def create_checkout_session(self, tier: SubscriptionTier) -> Optional[str]:
        """
        Start a checkout for ``tier`` with the payment collaborator.

        Returns:
            The checkout URL, or None if the tier has no price or the call failed
        """
        if not self.get_user_id() or self.is_closed:
            return None
        price_ref = self.price_refs.get(tier.value)
        if not price_ref:
            logger.warning(f"No checkout price configured for tier {tier.value}")
            return None

        try:
            with remote_operation("create_checkout_session"):
                session = self.backend.create_checkout_session(price_ref)
        except PolicyError as e:
            logger.error(f"Checkout for {tier.value} failed: {e}")
            self.notifier.notify("Error", "Failed to create checkout session", variant="destructive")
            return None

        if self._discard_if_closed("create_checkout_session"):
            return None
        # The tier may change once the user completes payment
        self.mark_stale()
        return session.url

    def create_portal_session(self) -> Optional[str]:
        """Open the payment collaborator's customer portal. Returns the URL or None."""
        if not self.get_user_id() or self.is_closed:
            return None
        try:
            with remote_operation("create_portal_session"):
                session = self.backend.create_portal_session()
        except PolicyError as e:
            logger.error(f"Customer portal failed: {e}")
            self.notifier.notify("Error", "Failed to open customer portal", variant="destructive")
            return None
        if self._discard_if_closed("create_portal_session"):
            return None
        return session.url

    # =====================
    # Private helper methods
    # =====================

    def _fetch_record(self, user_id: str):
        with remote_operation("get_subscription"):
            return self.backend.get_subscription(user_id)

    def _notify_tier_change(self, old_tier: SubscriptionTier, new_tier: SubscriptionTier) -> None:
        logger.info(f"Tier changed from {old_tier.value} to {new_tier.value}")
        for listener in list(self._listeners):
            listener(old_tier, new_tier)

    def _on_close(self) -> None:
        self._listeners.clear()
