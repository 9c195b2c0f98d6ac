"""
Data models for the subscription resolver.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from quota_policy.tiers import SubscriptionTier


@dataclass
class SubscriptionState:
    """
    Cached view of a user's subscription and swipe quota.

    Replaced as a whole by a full refetch; ``remaining_swipes`` is additionally
    lowered after a confirmed swipe, which marks the state ``stale`` until the
    next refetch.
    """
    tier: SubscriptionTier = SubscriptionTier.FREE
    status: str = "active"
    period_end: Optional[datetime] = None
    remaining_swipes: int = 0
    loading: bool = True
    stale: bool = False

    def copy(self, **changes) -> "SubscriptionState":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "tier": self.tier.value,
            "status": self.status,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "remaining_swipes": self.remaining_swipes,
            "loading": self.loading,
            "stale": self.stale,
        }
