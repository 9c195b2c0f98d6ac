"""
Subscription tier resolution.
"""

from .models import SubscriptionState
from .resolver import SubscriptionResolver

__all__ = ["SubscriptionState", "SubscriptionResolver"]
