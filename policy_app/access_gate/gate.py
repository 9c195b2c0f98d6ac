"""
Access gate: tier entitlement decisions.
"""

from typing import Dict, Optional

from quota_policy.tiers import SubscriptionTier, has_access

from .models import AccessDecision, UpgradePath


class AccessGate:
    """
    Pure tier comparison over the resolver's cached tier.

    Holds no state of its own and never calls the backend.
    """

    def __init__(self, resolver=None, price_refs: Optional[Dict[str, str]] = None):
        self.resolver = resolver
        self.price_refs = dict(price_refs or {})

    @staticmethod
    def has_access(current_tier: SubscriptionTier, required_tier: SubscriptionTier) -> bool:
        return has_access(current_tier, required_tier)

    def can_access(self, required_tier: SubscriptionTier) -> bool:
        """Whether the session's current tier unlocks ``required_tier`` features."""
        return has_access(self._current_tier(), required_tier)

    def upgrade_path(self, required_tier: SubscriptionTier) -> UpgradePath:
        return UpgradePath(
            required_tier=required_tier,
            price_ref=self.price_refs.get(required_tier.value),
        )

    def require(
        self,
        required_tier: SubscriptionTier,
        current_tier: Optional[SubscriptionTier] = None,
    ) -> AccessDecision:
        """Decide access and attach the upgrade path when denied."""
        current = current_tier if current_tier is not None else self._current_tier()
        allowed = has_access(current, required_tier)
        return AccessDecision(
            allowed=allowed,
            current_tier=current,
            required_tier=required_tier,
            upgrade=None if allowed else self.upgrade_path(required_tier),
        )

    def _current_tier(self) -> SubscriptionTier:
        if self.resolver is None:
            return SubscriptionTier.FREE
        return self.resolver.tier
