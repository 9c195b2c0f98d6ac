"""
Swipe quota manager.

Free users get a daily swipe allowance counted by the server; paid tiers are
unlimited but every swipe is still reported for auditing.
"""

import logging
from typing import Callable, Optional

from quota_policy.errors import PolicyError, QuotaExceeded
from quota_policy.lifecycle import SessionComponent
from quota_policy.notifications import Notifier
from quota_policy.tiers import SubscriptionTier

from ..ledger.client import SWIPE_ACTION, QuotaLedgerClient
from ..subscription.resolver import SubscriptionResolver

logger = logging.getLogger(__name__)

UNLIMITED_DISPLAY = 999


class SwipeQuotaManager(SessionComponent):
    """
    Decides whether the current user may swipe and records swipes.

    Reads tier and remaining count from the session's ``SubscriptionResolver``.
    The local count is only lowered after the server confirmed the swipe.
    """

    def __init__(
        self,
        resolver: SubscriptionResolver,
        ledger: QuotaLedgerClient,
        notifier: Notifier,
        get_user_id: Callable[[], Optional[str]],
        unlimited_display: int = UNLIMITED_DISPLAY,
        atomic: bool = False,
    ):
        super().__init__()
        self.resolver = resolver
        self.ledger = ledger
        self.notifier = notifier
        self.get_user_id = get_user_id
        self.unlimited_display = unlimited_display
        self.atomic = atomic
        self._loading = False
        resolver.on_tier_change(self._on_tier_change)

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def is_premium(self) -> bool:
        return self.resolver.tier.is_paid

    @property
    def remaining_swipes(self) -> int:
        return self.resolver.state.remaining_swipes

    @property
    def display_remaining(self) -> int:
        """Count to show the user. Paid tiers show the unlimited sentinel."""
        if self.is_premium:
            return self.unlimited_display
        return self.remaining_swipes

    def refresh(self) -> bool:
        """Reload today's remaining swipes from the server."""
        user_id = self.get_user_id()
        if not user_id or self.is_closed:
            return False

        self._loading = True
        try:
            remaining = self.ledger.remaining_swipes(user_id)
        except PolicyError as e:
            logger.error(f"Failed to refresh swipe limits for {user_id}: {e}")
            return False
        finally:
            self._loading = False

        if self._discard_if_closed("refresh swipe limits"):
            return False
        self.resolver.set_remaining_swipes(remaining)
        return True

    def can_swipe(self) -> bool:
        """True for any paid tier, otherwise iff swipes remain. Never calls the server."""
        if self.is_premium:
            return True
        return self.remaining_swipes > 0

    def consume_swipe(self) -> bool:
        """
        Spend one swipe.

        Returns:
            True if the server recorded the swipe
        """
        user_id = self.get_user_id()
        if not user_id or self.is_closed:
            return False

        if not self.can_swipe():
            self._deny()
            return False

        tier = self.resolver.tier
        try:
            if self.atomic:
                allowed = self.ledger.try_consume(user_id, SWIPE_ACTION)
            else:
                self.ledger.increment(user_id, SWIPE_ACTION)
                allowed = True
        except PolicyError as e:
            logger.error(f"Failed to record swipe for {user_id}: {e}")
            return False

        if self._discard_if_closed("consume_swipe"):
            return allowed

        if not allowed:
            # Server says the allowance is spent even though the cache did not
            self.resolver.set_remaining_swipes(0)
            self._deny()
            return False

        if tier is SubscriptionTier.FREE:
            self.resolver.apply_swipe_consumed()
        logger.info(f"Swipe consumed by {user_id} ({tier.value}), {self.display_remaining} left")
        return True

    # =====================
    # Private helper methods
    # =====================

    def _deny(self) -> None:
        denial = QuotaExceeded(SWIPE_ACTION, "Upgrade to premium for unlimited swipes!")
        logger.info(f"Swipe denied: {denial}")
        self.notifier.notify("Daily Limit Reached", denial.message, variant="destructive")

    def _on_tier_change(self, old_tier: SubscriptionTier, new_tier: SubscriptionTier) -> None:
        self.refresh()
