"""
Data models for rate limiting.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class OnError(Enum):
    """What a limiter answers when the remote check itself fails."""
    ALLOW = "allow"  # fail open
    DENY = "deny"    # fail closed


@dataclass(frozen=True)
class RateLimitPolicy:
    """Cap, window and failure policy for one kind of action."""
    max_attempts: int
    window_minutes: int
    on_error: OnError = OnError.ALLOW
    audit_action: Optional[str] = None  # audit rows counted for the remaining estimate

    def __post_init__(self):
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        if self.window_minutes <= 0:
            raise ValueError("window_minutes must be > 0")


@dataclass
class RateLimitState:
    """Outcome of the last check. Never persisted, safe to recompute."""
    is_limited: bool = False
    remaining_queries: int = 0
    reset_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "is_limited": self.is_limited,
            "remaining_queries": self.remaining_queries,
            "reset_time": self.reset_time.isoformat() if self.reset_time else None,
        }


@dataclass
class QuotaCheckResult:
    """Result of a rate limit check."""
    allowed: bool
    blocked: bool = False  # True only for an explicit quota denial
    remaining_attempts: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "blocked": self.blocked,
            "remaining_attempts": self.remaining_attempts,
        }
