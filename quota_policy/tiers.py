"""
Subscription tiers and their total order.

Tiers are ordered free < basic < premium < elite. Every entitlement decision
goes through this ordering, never through string comparison.
"""

from enum import Enum
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class SubscriptionTier(Enum):
    """Subscription tier levels, declared in ascending order."""
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    ELITE = "elite"

    @property
    def ordinal(self) -> int:
        """Position of the tier in the fixed order (free=0 ... elite=3)."""
        return _TIER_SEQUENCE.index(self)

    @property
    def is_paid(self) -> bool:
        return self is not SubscriptionTier.FREE

    def __lt__(self, other):
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.ordinal < other.ordinal

    def __le__(self, other):
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.ordinal <= other.ordinal

    def __gt__(self, other):
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.ordinal > other.ordinal

    def __ge__(self, other):
        if not isinstance(other, SubscriptionTier):
            return NotImplemented
        return self.ordinal >= other.ordinal

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if a tier string is valid."""
        try:
            cls(value)
            return True
        except ValueError:
            return False

    @classmethod
    def parse(cls, value: Optional[str], default: "SubscriptionTier" = None) -> "SubscriptionTier":
        """
        Convert a stored tier string into a tier.

        Missing values fall back to ``default`` (free unless given). Unknown
        strings also fall back, with a warning, since the row is owned by the
        backend and may carry values this client does not know yet.
        """
        fallback = default or cls.FREE
        if value is None or value == "":
            return fallback
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning(f"Unknown subscription tier '{value}', using {fallback.value}")
            return fallback


_TIER_SEQUENCE = tuple(SubscriptionTier)


def compare_tiers(a: SubscriptionTier, b: SubscriptionTier) -> int:
    """Return -1, 0 or 1 as ``a`` ranks below, equal to or above ``b``."""
    return (a.ordinal > b.ordinal) - (a.ordinal < b.ordinal)


def has_access(current_tier: SubscriptionTier, required_tier: SubscriptionTier) -> bool:
    """A feature requiring ``required_tier`` is open to ``current_tier`` iff it ranks at least as high."""
    return current_tier.ordinal >= required_tier.ordinal
