# Core of the usage quota and access-tier policy engine

from .tiers import SubscriptionTier, compare_tiers, has_access
from .errors import (
    PolicyError,
    TransientRemoteError,
    QuotaExceeded,
    UnauthenticatedAccess,
    PersistenceConflict,
    remote_operation,
)
from .models import CheckoutSession, DailyReward, RewardType, SubscriptionRecord
from .notifications import Notice, Notifier
from .lifecycle import SessionComponent
from .backends import PolicyBackend, InMemoryBackend, SupabaseBackend, create_backend
from .logging_config import (
    setup_logging,
    stop_logging,
    get_logger,
)

__all__ = [
    "SubscriptionTier",
    "compare_tiers",
    "has_access",
    "PolicyError",
    "TransientRemoteError",
    "QuotaExceeded",
    "UnauthenticatedAccess",
    "PersistenceConflict",
    "remote_operation",
    "CheckoutSession",
    "DailyReward",
    "RewardType",
    "SubscriptionRecord",
    "Notice",
    "Notifier",
    "SessionComponent",
    "PolicyBackend",
    "InMemoryBackend",
    "SupabaseBackend",
    "create_backend",
    "setup_logging",
    "stop_logging",
    "get_logger",
]
