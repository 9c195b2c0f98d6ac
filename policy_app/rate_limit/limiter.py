"""
Per-user rate limiting of sensitive actions.
"""

import logging
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional

from quota_policy.errors import PolicyError, QuotaExceeded
from quota_policy.lifecycle import SessionComponent
from quota_policy.notifications import Notifier

from ..ledger.client import DISCOVERY_ACTION, QuotaLedgerClient
from .models import OnError, QuotaCheckResult, RateLimitPolicy, RateLimitState

logger = logging.getLogger(__name__)

DEFAULT_POLICY = RateLimitPolicy(max_attempts=10, window_minutes=60)
DISCOVERY_POLICY = RateLimitPolicy(
    max_attempts=30, window_minutes=5, audit_action=DISCOVERY_ACTION
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RateLimiter(SessionComponent):
    """
    Bounds how often the current user may perform a named action.

    A check is two remote steps: the server's limit check, then (when allowed)
    a count of recent audited actions to estimate what is left in the window.
    A failing limit check follows the policy's ``on_error``; a failing
    estimate leaves the state as it was.
    """

    def __init__(
        self,
        ledger: QuotaLedgerClient,
        notifier: Notifier,
        get_user_id: Callable[[], Optional[str]],
        default_policy: RateLimitPolicy = DEFAULT_POLICY,
        policies: Optional[Dict[str, RateLimitPolicy]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__()
        self.ledger = ledger
        self.notifier = notifier
        self.get_user_id = get_user_id
        self.default_policy = default_policy
        self.policies = dict(policies or {})
        self._clock = clock or _utcnow
        self._state = RateLimitState(remaining_queries=default_policy.max_attempts)
        self._checking = 0
        self._checking_lock = Lock()

    @property
    def state(self) -> RateLimitState:
        return RateLimitState(
            is_limited=self._state.is_limited,
            remaining_queries=self._state.remaining_queries,
            reset_time=self._state.reset_time,
        )

    @property
    def is_checking(self) -> bool:
        """True while any request thread is inside ``check``."""
        with self._checking_lock:
            return self._checking > 0

    def policy_for(
        self,
        action_type: str,
        max_attempts: Optional[int] = None,
        window_minutes: Optional[int] = None,
    ) -> RateLimitPolicy:
        """Configured policy for ``action_type`` with optional per-call overrides."""
        policy = self.policies.get(action_type, self.default_policy)
        if max_attempts is None and window_minutes is None:
            return policy
        return RateLimitPolicy(
            max_attempts=policy.max_attempts if max_attempts is None else max_attempts,
            window_minutes=policy.window_minutes if window_minutes is None else window_minutes,
            on_error=policy.on_error,
            audit_action=policy.audit_action,
        )

    def check_rate_limit(self, action_type: str) -> bool:
        """True if ``action_type`` may proceed now."""
        return self.check(action_type).allowed

    def check(
        self,
        action_type: str,
        max_attempts: Optional[int] = None,
        window_minutes: Optional[int] = None,
    ) -> QuotaCheckResult:
        """
        Check whether the current user may perform ``action_type``.

        Args:
            action_type: Name of the action being limited
            max_attempts: Override of the policy cap for this call
            window_minutes: Override of the policy window for this call

        Returns:
            QuotaCheckResult; ``blocked`` is set only for an explicit denial
        """
        user_id = self.get_user_id()
        if not user_id or self.is_closed:
            logger.info(f"Rate limit check for {action_type} without a user, denying")
            return QuotaCheckResult(allowed=False, blocked=False)

        policy = self.policy_for(action_type, max_attempts, window_minutes)
        with self._checking_lock:
            self._checking += 1
        try:
            try:
                allowed = self._remote_check(user_id, action_type, policy)
            except PolicyError as e:
                logger.error(f"Rate limit check failed for {user_id}/{action_type}: {e}")
                return self._on_check_error(action_type, policy)

            if self._discard_if_closed("rate limit check"):
                return QuotaCheckResult(allowed=allowed, blocked=not allowed)

            now = self._clock()
            window = timedelta(minutes=policy.window_minutes)

            if not allowed:
                self._state = RateLimitState(
                    is_limited=True,
                    remaining_queries=0,
                    reset_time=now + window,
                )
                title, description = self._denial_message(action_type)
                denial = QuotaExceeded(action_type, description)
                self.notifier.notify(title, denial.message, variant="destructive")
                logger.info(f"Rate limited {user_id} until {self._state.reset_time}: {denial}")
                return QuotaCheckResult(allowed=False, blocked=True, remaining_attempts=0)

            remaining = self._estimate_remaining(user_id, action_type, policy, now - window)
            if remaining is None or self._discard_if_closed("rate limit estimate"):
                return QuotaCheckResult(allowed=True, blocked=False)

            self._state = RateLimitState(
                is_limited=False,
                remaining_queries=remaining,
                reset_time=now + window if remaining == 0 else None,
            )
            return QuotaCheckResult(allowed=True, blocked=False, remaining_attempts=remaining)
        finally:
            with self._checking_lock:
                self._checking -= 1

    def record(self, action_type: str) -> bool:
        """Audit that ``action_type`` was performed. Call only after it succeeded."""
        user_id = self.get_user_id()
        if not user_id or self.is_closed:
            return False
        try:
            self.ledger.increment(user_id, action_type)
        except PolicyError as e:
            logger.error(f"Could not record {action_type} for {user_id}: {e}")
            return False
        return True

    # =====================
    # Private helper methods
    # =====================

    def _remote_check(self, user_id: str, action_type: str, policy: RateLimitPolicy) -> bool:
        return self.ledger.check(user_id, action_type, policy.max_attempts, policy.window_minutes)

    def _estimate_remaining(
        self, user_id: str, action_type: str, policy: RateLimitPolicy, since: datetime
    ) -> Optional[int]:
        audit_action = policy.audit_action or action_type
        try:
            recent = self.ledger.count_recent(user_id, audit_action, since)
        except PolicyError as e:
            logger.warning(f"Could not estimate remaining {action_type} for {user_id}: {e}")
            return None
        return max(0, policy.max_attempts - recent)

    def _on_check_error(self, action_type: str, policy: RateLimitPolicy) -> QuotaCheckResult:
        if policy.on_error is OnError.ALLOW:
            logger.warning(f"Allowing {action_type} while the limiter is unavailable")
            return QuotaCheckResult(allowed=True, blocked=False)
        logger.warning(f"Denying {action_type} while the limiter is unavailable")
        return QuotaCheckResult(allowed=False, blocked=False)

    def _denial_message(self, action_type: str) -> tuple[str, str]:
        return (
            "Rate limit exceeded",
            f"Too many {action_type} attempts. Please wait before trying again.",
        )


class DiscoveryRateLimiter(RateLimiter):
    """Limiter for discovery searches, backed by the dedicated discovery check."""

    def __init__(
        self,
        ledger: QuotaLedgerClient,
        notifier: Notifier,
        get_user_id: Callable[[], Optional[str]],
        policy: RateLimitPolicy = DISCOVERY_POLICY,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(
            ledger,
            notifier,
            get_user_id,
            default_policy=policy,
            clock=clock,
        )

    def check_rate_limit(self, action_type: str = DISCOVERY_ACTION) -> bool:
        return self.check(action_type).allowed

    def _remote_check(self, user_id: str, action_type: str, policy: RateLimitPolicy) -> bool:
        return self.ledger.check_discovery(user_id)

    def _denial_message(self, action_type: str) -> tuple[str, str]:
        return (
            "Rate Limit Reached",
            "Please wait a few minutes before searching again. This protects user privacy.",
        )
