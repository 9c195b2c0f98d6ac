"""
Contract of the remote backend the policy engine runs against.

Every counter, subscription row and reward lives on the backend; the engine
only caches what these operations return. Implementations raise
``TransientRemoteError`` on failure.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from ..models import CheckoutSession, DailyReward, RewardType, SubscriptionRecord


class PolicyBackend(ABC):
    """Remote operations consumed by the policy engine."""

    # Whether try_consume() is a single server-side check-and-increment
    supports_atomic_consume: bool = False

    # ---- rate limiting ----

    @abstractmethod
    def check_discovery_rate_limit(self, user_id: str) -> bool:
        """True if the user may run another discovery query."""

    @abstractmethod
    def check_generic_rate_limit(
        self, user_id: str, action_type: str, max_attempts: int, window_minutes: int
    ) -> bool:
        """True if the user is within ``max_attempts`` of ``action_type`` per window."""

    @abstractmethod
    def count_recent_audited_actions(self, user_id: str, action_type: str, since: datetime) -> int:
        """Number of audit rows for (user, action) created at or after ``since``."""

    @abstractmethod
    def record_audited_action(self, user_id: str, action_type: str) -> None:
        """Append an audit row for an action that was performed."""

    # ---- swipes ----

    @abstractmethod
    def get_daily_swipe_remaining(self, user_id: str) -> Optional[int]:
        """Swipes left today according to the server counter."""

    @abstractmethod
    def increment_swipe_count(self, user_id: str) -> None:
        """Record one swipe for today."""

    def try_consume(self, user_id: str, resource: str) -> bool:
        """Check and increment ``resource`` in one server-side step."""
        raise NotImplementedError(f"{type(self).__name__} has no atomic consume operation")

    # ---- subscriptions and payments ----

    @abstractmethod
    def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        """The user's subscription row, or None when there is none."""

    @abstractmethod
    def create_checkout_session(self, price_ref: str) -> CheckoutSession:
        """Start a hosted checkout for ``price_ref``."""

    @abstractmethod
    def create_portal_session(self) -> CheckoutSession:
        """Open the hosted billing portal."""

    # ---- daily rewards ----

    @abstractmethod
    def get_or_create_daily_reward(
        self,
        user_id: str,
        reward_date: date,
        reward_type: RewardType,
        reward_value: int,
    ) -> DailyReward:
        """
        Return the (user, day) reward, creating it with the given type and value
        if absent. Concurrent first calls must yield one row.
        """

    @abstractmethod
    def claim_daily_reward(self, reward_id: str) -> None:
        """Mark a reward claimed."""
