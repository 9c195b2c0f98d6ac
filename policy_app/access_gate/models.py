"""
Data models for tier-gated access.
"""

from dataclasses import dataclass
from typing import Optional

from quota_policy.tiers import SubscriptionTier


@dataclass(frozen=True)
class UpgradePath:
    """Checkout price a user needs to reach ``required_tier``."""
    required_tier: SubscriptionTier
    price_ref: Optional[str]

    def to_dict(self) -> dict:
        return {
            "required_tier": self.required_tier.value,
            "price_ref": self.price_ref,
        }


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access check, with the upgrade path when denied."""
    allowed: bool
    current_tier: SubscriptionTier
    required_tier: SubscriptionTier
    upgrade: Optional[UpgradePath] = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "current_tier": self.current_tier.value,
            "required_tier": self.required_tier.value,
            "upgrade": self.upgrade.to_dict() if self.upgrade else None,
        }
