"""
Client for the server-side usage counters.

Counters are owned by the backend; this client only forwards checks and
increments and keeps track of how many calls are in flight.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from threading import Lock
from typing import Optional

from quota_policy.backends.base import PolicyBackend
from quota_policy.errors import TransientRemoteError, remote_operation

logger = logging.getLogger(__name__)

SWIPE_ACTION = "swipe"
DISCOVERY_ACTION = "discovery_profiles_accessed"


class QuotaLedgerClient:
    """
    Wraps the remote counter operations.

    ``check`` never mutates a counter it does not own the gate for, and
    ``increment`` must only be called once the action was actually performed.
    Checking and incrementing are separate remote calls unless the backend
    offers ``try_consume``.
    """

    def __init__(self, backend: PolicyBackend):
        self.backend = backend
        self._in_flight = 0
        self._lock = Lock()

    @property
    def in_flight(self) -> int:
        """Number of remote calls currently awaiting a response."""
        return self._in_flight

    @property
    def supports_atomic_consume(self) -> bool:
        return bool(getattr(self.backend, "supports_atomic_consume", False))

    @contextmanager
    def _tracked(self, operation: str, user_id: str):
        with self._lock:
            self._in_flight += 1
        try:
            with remote_operation(operation):
                yield
        except TransientRemoteError as e:
            logger.warning(f"Ledger call {operation} failed for {user_id}: {e}")
            raise
        finally:
            with self._lock:
                self._in_flight -= 1

    def check_discovery(self, user_id: str) -> bool:
        """Whether the next discovery query for ``user_id`` is within limits."""
        with self._tracked("check_discovery_rate_limit", user_id):
            return bool(self.backend.check_discovery_rate_limit(user_id))

    def check(self, user_id: str, action_type: str, max_attempts: int, window_minutes: int) -> bool:
        """Whether the next ``action_type`` for ``user_id`` is within ``max_attempts`` per window."""
        with self._tracked("check_rate_limit", user_id):
            return bool(self.backend.check_generic_rate_limit(
                user_id, action_type, max_attempts, window_minutes
            ))

    def count_recent(self, user_id: str, action_type: str, since: datetime) -> int:
        """Audited ``action_type`` rows for ``user_id`` since ``since``."""
        with self._tracked("count_recent_audited_actions", user_id):
            count = self.backend.count_recent_audited_actions(user_id, action_type, since)
        return int(count or 0)

    def remaining_swipes(self, user_id: str) -> Optional[int]:
        """Server's count of swipes left today, or None if it has none."""
        with self._tracked("check_daily_swipe_limit", user_id):
            remaining = self.backend.get_daily_swipe_remaining(user_id)
        return None if remaining is None else int(remaining)

    def increment(self, user_id: str, action_type: str) -> None:
        """Record that ``action_type`` happened. Swipes hit the swipe counter, everything else the audit log."""
        if action_type == SWIPE_ACTION:
            with self._tracked("increment_swipe_count", user_id):
                self.backend.increment_swipe_count(user_id)
        else:
            with self._tracked("record_audited_action", user_id):
                self.backend.record_audited_action(user_id, action_type)
        logger.debug(f"Incremented {action_type} for {user_id}")

    def try_consume(self, user_id: str, resource: str) -> bool:
        """Single remote check-and-increment. Only valid when ``supports_atomic_consume``."""
        if not self.supports_atomic_consume:
            raise NotImplementedError("Backend has no atomic consume operation")
        with self._tracked("try_consume", user_id):
            return bool(self.backend.try_consume(user_id, resource))
