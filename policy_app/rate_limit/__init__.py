"""
Rate limiting of discovery searches and other sensitive actions.
"""

from .models import OnError, RateLimitPolicy, RateLimitState, QuotaCheckResult
from .limiter import RateLimiter, DiscoveryRateLimiter

__all__ = [
    "OnError",
    "RateLimitPolicy",
    "RateLimitState",
    "QuotaCheckResult",
    "RateLimiter",
    "DiscoveryRateLimiter",
]
