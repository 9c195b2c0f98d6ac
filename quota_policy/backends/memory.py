"""
In-process backend for development and tests.

Holds subscriptions, swipe counters, the audit log and daily rewards in
memory behind a single lock, so every operation is atomic with respect to the
others. Counters are authoritative here the same way the real service's are.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, List, Optional, Tuple

from ..errors import TransientRemoteError
from ..models import CheckoutSession, DailyReward, RewardType, SubscriptionRecord
from ..tiers import SubscriptionTier
from .base import PolicyBackend

logger = logging.getLogger(__name__)

DISCOVERY_AUDIT_ACTION = "discovery_profiles_accessed"


@dataclass
class AuditEntry:
    """One audited action."""
    user_id: str
    action: str
    created_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryBackend(PolicyBackend):
    """
    Process-local implementation of every remote operation.

    Swipe limits apply per UTC day. Discovery queries are capped at
    ``discovery_max_queries`` per ``discovery_window_minutes``; generic rate
    limits use the caller-supplied cap and window. Allowed checks are recorded
    server-side, which is what actually enforces the limit.
    """

    supports_atomic_consume = True

    def __init__(
        self,
        free_daily_limit: int = 50,
        discovery_max_queries: int = 30,
        discovery_window_minutes: int = 5,
        checkout_base_url: str = "https://checkout.example.com",
        clock: Optional[Callable[[], datetime]] = None,
        audit_retention_minutes: int = 24 * 60,
        reward_retention_days: int = 7,
    ):
        self.free_daily_limit = free_daily_limit
        self.discovery_max_queries = discovery_max_queries
        self.discovery_window_minutes = discovery_window_minutes
        self.checkout_base_url = checkout_base_url.rstrip("/")
        self._clock = clock or _utcnow
        self.audit_retention_minutes = audit_retention_minutes
        self.reward_retention_days = reward_retention_days
        # Longest window any caller has counted over, so pruning never undercounts it
        self._longest_window = timedelta(minutes=max(discovery_window_minutes, audit_retention_minutes))
        self._lock = Lock()

        self._subscriptions: Dict[str, SubscriptionRecord] = {}
        self._swipes: Dict[Tuple[str, str], int] = {}  # (user_id, ISO day) -> count
        self._audit_log: List[AuditEntry] = []
        self._attempts: List[AuditEntry] = []
        self._rewards: Dict[Tuple[str, str], DailyReward] = {}  # (user_id, ISO day) -> reward

    # =====================
    # Admin helpers
    # =====================

    def set_subscription(
        self,
        user_id: str,
        tier: str,
        status: str = "active",
        current_period_end: Optional[datetime] = None,
    ) -> SubscriptionRecord:
        """Create or replace a user's subscription row."""
        record = SubscriptionRecord(
            user_id=user_id,
            tier=tier,
            status=status,
            current_period_end=current_period_end,
        )
        with self._lock:
            self._subscriptions[user_id] = record
        logger.info(f"Set subscription for {user_id}: {tier}/{status}")
        return record

    def remove_subscription(self, user_id: str) -> None:
        with self._lock:
            self._subscriptions.pop(user_id, None)

    def swipes_used_today(self, user_id: str) -> int:
        with self._lock:
            return self._swipes.get((user_id, self._today()), 0)

    def reset_daily_limits(self) -> None:
        """Reset all swipe counters (for admin/testing)."""
        with self._lock:
            self._swipes = {}
        logger.info("Reset all daily swipe counters")

    def rewards_for(self, user_id: str) -> List[DailyReward]:
        with self._lock:
            return [r for (uid, _), r in self._rewards.items() if uid == user_id]

    # =====================
    # Private helpers
    # =====================

    def _today(self) -> str:
        return self._clock().date().isoformat()

    def _tier(self, user_id: str) -> SubscriptionTier:
        record = self._subscriptions.get(user_id)
        return SubscriptionTier.parse(record.tier if record else None)

    def _count(self, entries: List[AuditEntry], user_id: str, action: str, since: datetime) -> int:
        return sum(
            1 for e in entries
            if e.user_id == user_id and e.action == action and e.created_at >= since
        )

    def _note_window(self, window: timedelta) -> None:
        if window > self._longest_window:
            self._longest_window = window

    def _clean_old_entries(self, now: datetime) -> None:
        """Drop audit entries no window can reach and swipe counters from past days."""
        cutoff = now - self._longest_window
        if self._audit_log and self._audit_log[0].created_at < cutoff:
            self._audit_log = [e for e in self._audit_log if e.created_at >= cutoff]
        if self._attempts and self._attempts[0].created_at < cutoff:
            self._attempts = [e for e in self._attempts if e.created_at >= cutoff]

        today = now.date().isoformat()
        old_days = [key for key in self._swipes if key[1] != today]
        for key in old_days:
            del self._swipes[key]

    def _clean_old_rewards(self, reward_date: date) -> None:
        oldest = (reward_date - timedelta(days=self.reward_retention_days)).isoformat()
        old_keys = [key for key in self._rewards if key[1] < oldest]
        for key in old_keys:
            del self._rewards[key]

    # =====================
    # Rate limiting
    # =====================

    def check_discovery_rate_limit(self, user_id: str) -> bool:
        with self._lock:
            now = self._clock()
            self._clean_old_entries(now)
            since = now - timedelta(minutes=self.discovery_window_minutes)
            recent = self._count(self._audit_log, user_id, DISCOVERY_AUDIT_ACTION, since)
            if recent >= self.discovery_max_queries:
                return False
            self._audit_log.append(AuditEntry(user_id, DISCOVERY_AUDIT_ACTION, now))
            return True

    def check_generic_rate_limit(
        self, user_id: str, action_type: str, max_attempts: int, window_minutes: int
    ) -> bool:
        with self._lock:
            now = self._clock()
            self._note_window(timedelta(minutes=window_minutes))
            self._clean_old_entries(now)
            since = now - timedelta(minutes=window_minutes)
            recent = self._count(self._attempts, user_id, action_type, since)
            if recent >= max_attempts:
                return False
            self._attempts.append(AuditEntry(user_id, action_type, now))
            return True

    def count_recent_audited_actions(self, user_id: str, action_type: str, since: datetime) -> int:
        with self._lock:
            now = self._clock()
            self._note_window(now - since)
            self._clean_old_entries(now)
            return self._count(self._audit_log, user_id, action_type, since)

    def record_audited_action(self, user_id: str, action_type: str) -> None:
        with self._lock:
            now = self._clock()
            self._clean_old_entries(now)
            self._audit_log.append(AuditEntry(user_id, action_type, now))

    # =====================
    # Swipes
    # =====================

    def get_daily_swipe_remaining(self, user_id: str) -> Optional[int]:
        with self._lock:
            used = self._swipes.get((user_id, self._today()), 0)
            return max(0, self.free_daily_limit - used)

    def increment_swipe_count(self, user_id: str) -> None:
        with self._lock:
            self._clean_old_entries(self._clock())
            key = (user_id, self._today())
            self._swipes[key] = self._swipes.get(key, 0) + 1

    def try_consume(self, user_id: str, resource: str) -> bool:
        if resource != "swipe":
            raise TransientRemoteError("try_consume", f"unknown resource '{resource}'")
        with self._lock:
            self._clean_old_entries(self._clock())
            key = (user_id, self._today())
            used = self._swipes.get(key, 0)
            if not self._tier(user_id).is_paid and used >= self.free_daily_limit:
                return False
            self._swipes[key] = used + 1
            return True

    # =====================
    # Subscriptions and payments
    # =====================

    def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        with self._lock:
            record = self._subscriptions.get(user_id)
            return record.model_copy() if record else None

    def create_checkout_session(self, price_ref: str) -> CheckoutSession:
        return CheckoutSession(url=f"{self.checkout_base_url}/{price_ref}")

    def create_portal_session(self) -> CheckoutSession:
        return CheckoutSession(url=f"{self.checkout_base_url}/portal")

    # =====================
    # Daily rewards
    # =====================

    def get_or_create_daily_reward(
        self,
        user_id: str,
        reward_date: date,
        reward_type: RewardType,
        reward_value: int,
    ) -> DailyReward:
        key = (user_id, reward_date.isoformat())
        with self._lock:
            self._clean_old_rewards(reward_date)
            reward = self._rewards.get(key)
            if reward is None:
                reward = DailyReward(
                    id=str(uuid.uuid4()),
                    user_id=user_id,
                    reward_type=reward_type,
                    reward_value=reward_value,
                    claimed=False,
                    reward_date=reward_date,
                )
                self._rewards[key] = reward
                logger.info(f"Created daily reward for {user_id} on {key[1]}: {reward.describe()}")
            return reward.model_copy()

    def claim_daily_reward(self, reward_id: str) -> None:
        with self._lock:
            for key, reward in self._rewards.items():
                if reward.id == reward_id:
                    self._rewards[key] = reward.model_copy(update={"claimed": True})
                    return
        raise TransientRemoteError("claim_daily_reward", f"reward {reward_id} not found")
