"""
HTTP backend for a Supabase-style service.

Remote procedures are called through PostgREST (``/rest/v1/rpc/<name>``),
tables through PostgREST filters, and payment sessions through edge functions
(``/functions/v1/<name>``).
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import requests

from ..errors import PersistenceConflict, TransientRemoteError
from ..models import CheckoutSession, DailyReward, RewardType, SubscriptionRecord
from .base import PolicyBackend

logger = logging.getLogger(__name__)


def build_session(api_key: str, access_token: Optional[str] = None) -> requests.Session:
    """Build a requests session carrying the project key and the caller's token."""
    session = requests.Session()
    session.headers.update({
        "apikey": api_key,
        "Authorization": f"Bearer {access_token or api_key}",
        "Content-Type": "application/json",
    })
    return session


def parse_content_range_total(header: Optional[str]) -> Optional[int]:
    """Extract the total from a Content-Range header such as ``0-0/12`` or ``*/0``."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    if not total.isdigit():
        return None
    return int(total)


class SupabaseBackend(PolicyBackend):
    """PolicyBackend over HTTP with ``requests``."""

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        timeout: int = 10,
        atomic_consume_rpc: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            url: Project base URL, e.g. ``https://xyz.supabase.co``
            api_key: Public (anon) project key
            access_token: JWT of the signed-in user, if any
            timeout: Request timeout in seconds
            atomic_consume_rpc: Name of a check-and-increment procedure, if deployed
            session: Pre-built session (tests)
        """
        if not url:
            raise ValueError("Backend URL is required")
        self.base_url = url.rstrip("/")
        self.timeout = timeout
        self.atomic_consume_rpc = atomic_consume_rpc
        self.session = session or build_session(api_key, access_token)

    @property
    def supports_atomic_consume(self) -> bool:  # type: ignore[override]
        return bool(self.atomic_consume_rpc)

    # =====================
    # Transport
    # =====================

    def _request(self, operation: str, method: str, path: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(
                method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"{operation} failed: {e}")
            raise TransientRemoteError(operation, str(e)) from e
        return response

    def _json(self, operation: str, response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TransientRemoteError(operation, f"invalid JSON response: {e}") from e

    def _rpc(self, name: str, params: Dict[str, Any]) -> Any:
        response = self._request(name, "POST", f"/rest/v1/rpc/{name}", json=params)
        return self._json(name, response)

    def _function(self, name: str, body: Optional[Dict[str, Any]] = None) -> CheckoutSession:
        response = self._request(name, "POST", f"/functions/v1/{name}", json=body or {})
        data = self._json(name, response) or {}
        return CheckoutSession.model_validate(data)

    def _select(self, operation: str, table: str, params: Dict[str, str]) -> list:
        response = self._request(operation, "GET", f"/rest/v1/{table}", params=params)
        rows = self._json(operation, response)
        return rows if isinstance(rows, list) else []

    # =====================
    # Rate limiting
    # =====================

    def check_discovery_rate_limit(self, user_id: str) -> bool:
        return bool(self._rpc("check_discovery_rate_limit", {"p_user_id": user_id}))

    def check_generic_rate_limit(
        self, user_id: str, action_type: str, max_attempts: int, window_minutes: int
    ) -> bool:
        return bool(self._rpc("check_rate_limit", {
            "p_user_id": user_id,
            "p_action_type": action_type,
            "p_max_attempts": max_attempts,
            "p_window_minutes": window_minutes,
        }))

    def count_recent_audited_actions(self, user_id: str, action_type: str, since: datetime) -> int:
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)
        operation = "count_recent_audited_actions"
        response = self._request(
            operation,
            "HEAD",
            "/rest/v1/security_audit_log",
            params={
                "select": "id",
                "user_id": f"eq.{user_id}",
                "action": f"eq.{action_type}",
                "created_at": f"gte.{since.isoformat()}",
            },
            headers={"Prefer": "count=exact"},
        )
        total = parse_content_range_total(response.headers.get("Content-Range"))
        if total is None:
            logger.warning(f"{operation}: no count in response for {user_id}/{action_type}")
            return 0
        return total

    def record_audited_action(self, user_id: str, action_type: str) -> None:
        self._rpc("log_security_event", {
            "p_user_id": user_id,
            "p_action": action_type,
            "p_resource_type": "quota",
        })

    # =====================
    # Swipes
    # =====================

    def get_daily_swipe_remaining(self, user_id: str) -> Optional[int]:
        data = self._rpc("check_daily_swipe_limit", {"user_uuid": user_id})
        return int(data) if data is not None else None

    def increment_swipe_count(self, user_id: str) -> None:
        self._rpc("increment_swipe_count", {"user_uuid": user_id})

    def try_consume(self, user_id: str, resource: str) -> bool:
        if not self.atomic_consume_rpc:
            return super().try_consume(user_id, resource)
        return bool(self._rpc(self.atomic_consume_rpc, {
            "p_user_id": user_id,
            "p_resource": resource,
        }))

    # =====================
    # Subscriptions and payments
    # =====================

    def get_subscription(self, user_id: str) -> Optional[SubscriptionRecord]:
        rows = self._select("get_subscription", "user_subscriptions", {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "limit": "1",
        })
        if not rows:
            return None
        return SubscriptionRecord.model_validate(rows[0])

    def create_checkout_session(self, price_ref: str) -> CheckoutSession:
        return self._function("create-checkout", {"priceId": price_ref})

    def create_portal_session(self) -> CheckoutSession:
        return self._function("customer-portal")

    # =====================
    # Daily rewards
    # =====================

    def get_or_create_daily_reward(
        self,
        user_id: str,
        reward_date: date,
        reward_type: RewardType,
        reward_value: int,
    ) -> DailyReward:
        operation = "get_or_create_daily_reward"
        day = reward_date.isoformat()
        response = self._request(
            operation,
            "POST",
            "/rest/v1/daily_rewards",
            params={"on_conflict": "user_id,reward_date"},
            headers={"Prefer": "resolution=ignore-duplicates,return=representation"},
            json={
                "user_id": user_id,
                "reward_type": reward_type.value,
                "reward_value": reward_value,
                "reward_date": day,
            },
        )
        rows = self._json(operation, response)
        if isinstance(rows, list) and rows:
            return DailyReward.model_validate(rows[0])

        # Insert was ignored: another client created today's row first
        rows = self._select(operation, "daily_rewards", {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "reward_date": f"eq.{day}",
            "limit": "1",
        })
        if not rows:
            raise PersistenceConflict("daily_rewards", f"{user_id}/{day}")
        return DailyReward.model_validate(rows[0])

    def claim_daily_reward(self, reward_id: str) -> None:
        self._request(
            "claim_daily_reward",
            "PATCH",
            "/rest/v1/daily_rewards",
            params={"id": f"eq.{reward_id}"},
            headers={"Prefer": "return=minimal"},
            json={"claimed": True},
        )
