"""
Per-user policy sessions.

A ``PolicySession`` owns every stateful component for one signed-in user.
Opening it is session establishment; closing it is logout or teardown.
"""

import logging
import time
from collections import OrderedDict
from threading import Event, Lock
from typing import Callable, Dict, List, Optional

from quota_policy.backends.base import PolicyBackend
from quota_policy.notifications import Notifier

from ..access_gate.gate import AccessGate
from ..daily_rewards.factory import create_daily_rewards_module
from ..ledger.client import QuotaLedgerClient
from ..rate_limit.factory import create_rate_limit_module
from ..subscription.factory import create_subscription_module
from ..swipes.factory import create_swipes_module

logger = logging.getLogger(__name__)


class PolicySession:
    """All quota and tier components for one user."""

    def __init__(self, user_id: str, backend: PolicyBackend, config_manager):
        if not user_id:
            raise ValueError("user_id is required")
        self.user_id = user_id
        self.backend = backend
        self._closed = False
        self._resolved = False
        self._resolve_lock = Lock()
        self._ready = Event()

        self.notifier = Notifier()
        self.ledger = QuotaLedgerClient(backend)

        rate_limit_module = create_rate_limit_module(
            self.ledger,
            self.notifier,
            self.get_user_id,
            config_manager.get_rate_limit_config(),
        )
        self.discovery_limiter = rate_limit_module["discovery"]
        self.rate_limiter = rate_limit_module["generic"]

        pricing_config = config_manager.get_pricing_config()
        self.resolver = create_subscription_module(
            backend,
            self.ledger,
            self.notifier,
            self.get_user_id,
            pricing_config,
        )["resolver"]

        self.swipes = create_swipes_module(
            self.resolver,
            self.ledger,
            self.notifier,
            self.get_user_id,
            config_manager.get_swipe_config(),
            config_manager.get_backend_config(),
        )["manager"]

        self.access_gate = AccessGate(self.resolver, pricing_config.price_refs)

        self.rewards = create_daily_rewards_module(
            backend,
            self.notifier,
            self.get_user_id,
            config_manager.get_reward_config(),
        )["service"]

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def resolved(self) -> bool:
        """True once a subscription fetch has succeeded for this session."""
        return self._resolved

    def get_user_id(self) -> Optional[str]:
        """The session's user, or None once the session is closed."""
        return None if self._closed else self.user_id

    def open(self) -> "PolicySession":
        """Start the notifier and resolve the subscription."""
        try:
            self.notifier.start()
            with self._resolve_lock:
                self._resolved = self.resolver.fetch_subscription_data()
        finally:
            self._ready.set()
        if self._resolved:
            logger.info(f"Opened policy session for {self.user_id}")
        else:
            logger.warning(f"Opened policy session for {self.user_id} with an unresolved subscription")
        return self

    def wait_until_open(self, timeout: Optional[float] = None) -> bool:
        """Block until ``open`` has finished. Returns False on timeout."""
        return self._ready.wait(timeout)

    def ensure_resolved(self) -> bool:
        """
        Retry the subscription fetch if no fetch has succeeded yet.

        Returns:
            True if the session holds a resolved subscription
        """
        if self._resolved or self._closed:
            return self._resolved
        with self._resolve_lock:
            if not self._resolved and not self._closed:
                self._resolved = self.resolver.fetch_subscription_data()
                if self._resolved:
                    logger.info(f"Resolved subscription for {self.user_id} on retry")
        return self._resolved

    def close(self) -> None:
        """Tear down every component. Results still in flight are discarded."""
        if self._closed:
            return
        self._closed = True
        for component in (
            self.swipes,
            self.resolver,
            self.discovery_limiter,
            self.rate_limiter,
            self.rewards,
        ):
            component.close()
        self.notifier.stop()
        logger.info(f"Closed policy session for {self.user_id}")


class SessionRegistry:
    """
    Keeps at most one live ``PolicySession`` per user id.

    Sessions idle for longer than ``idle_ttl_minutes`` are closed, and once
    ``max_sessions`` are live the least recently used one is closed to make room.
    """

    def __init__(
        self,
        backend: PolicyBackend,
        config_manager,
        idle_ttl_minutes: Optional[int] = 30,
        max_sessions: int = 1000,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.backend = backend
        self.config_manager = config_manager
        self.idle_ttl_minutes = idle_ttl_minutes
        self.max_sessions = max_sessions
        self._clock = clock or time.monotonic
        # Ordered oldest to most recently used
        self._sessions: "OrderedDict[str, PolicySession]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}
        self._lock = Lock()

    def open(self, user_id: str) -> PolicySession:
        """
        Return the user's live session, opening one if needed.

        A caller that finds a session still being opened by another request
        waits for it, and a session whose first fetch failed is refetched.
        """
        with self._lock:
            evicted = self._evict_expired()
            session = self._sessions.get(user_id)
            created = session is None or session.is_closed
            if created:
                session = PolicySession(user_id, self.backend, self.config_manager)
                self._sessions[user_id] = session
            self._touch(user_id)
            evicted.extend(self._evict_over_capacity())
        self._close_evicted(evicted)

        if created:
            try:
                return session.open()
            except Exception:
                self._forget(user_id, session)
                session.close()
                raise

        session.wait_until_open()
        if session.is_closed:
            # Evicted or failed while opening
            return self.open(user_id)
        session.ensure_resolved()
        return session

    def get(self, user_id: str) -> Optional[PolicySession]:
        with self._lock:
            evicted = self._evict_expired()
            session = self._sessions.get(user_id)
            if session is not None and not session.is_closed:
                self._touch(user_id)
        self._close_evicted(evicted)
        if session is None or session.is_closed:
            return None
        return session

    def close(self, user_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(user_id, None)
            self._last_seen.pop(user_id, None)
        if session is None:
            return False
        session.close()
        return True

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._last_seen.clear()
        for session in sessions:
            session.close()

    def prune(self) -> int:
        """Close every idle session now. Returns how many were closed."""
        with self._lock:
            evicted = self._evict_expired()
        self._close_evicted(evicted)
        return len(evicted)

    def __len__(self) -> int:
        self.prune()
        with self._lock:
            return sum(1 for s in self._sessions.values() if not s.is_closed)

    # =====================
    # Private helper methods
    # =====================

    def _touch(self, user_id: str) -> None:
        self._sessions.move_to_end(user_id)
        self._last_seen[user_id] = self._clock()

    def _forget(self, user_id: str, session: PolicySession) -> None:
        with self._lock:
            if self._sessions.get(user_id) is session:
                del self._sessions[user_id]
                self._last_seen.pop(user_id, None)

    def _evict_expired(self) -> List[PolicySession]:
        # Caller holds the lock
        if not self.idle_ttl_minutes or self.idle_ttl_minutes <= 0:
            return []
        cutoff = self._clock() - self.idle_ttl_minutes * 60
        evicted = []
        while self._sessions:
            user_id, session = next(iter(self._sessions.items()))
            if self._last_seen.get(user_id, cutoff) > cutoff and not session.is_closed:
                break
            del self._sessions[user_id]
            self._last_seen.pop(user_id, None)
            evicted.append(session)
        return evicted

    def _evict_over_capacity(self) -> List[PolicySession]:
        # Caller holds the lock
        evicted = []
        while len(self._sessions) > self.max_sessions:
            user_id, session = self._sessions.popitem(last=False)
            self._last_seen.pop(user_id, None)
            evicted.append(session)
        return evicted

    def _close_evicted(self, sessions: List[PolicySession]) -> None:
        for session in sessions:
            if not session.is_closed:
                logger.info(f"Evicting idle policy session for {session.user_id}")
            session.close()
