"""
User session services for the HTTP host.
"""
from typing import Optional

from flask import request, jsonify, make_response

from quota_policy.errors import UnauthenticatedAccess
from .session import PolicySession, SessionRegistry

COOKIE_MAX_AGE = 60 * 60 * 24 * 30  # 30-day cookie


class SessionService:
    """Maps the ``uid`` cookie to the user's live ``PolicySession``."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    def get_current_user_id(self) -> Optional[str]:
        """Get the current user ID from cookies."""
        uid = request.cookies.get("uid", "").strip()
        return uid or None

    def login(self, uid: str):
        """Open the user's session and set the cookie."""
        uid = (uid or "").strip()
        if not uid:
            return jsonify({"error": "uid is required"}), 400
        session = self.registry.open(uid)
        resp = make_response(self.payload(session, {"status": "ok", "uid": uid}))
        resp.set_cookie("uid", uid, max_age=COOKIE_MAX_AGE)
        return resp

    def logout(self):
        """Close the user's session and clear the cookie."""
        uid = self.get_current_user_id()
        if uid:
            self.registry.close(uid)
        resp = make_response(jsonify({"status": "ok"}))
        resp.delete_cookie("uid")
        return resp

    def require_session(self) -> PolicySession:
        """Live session of the current user; raises UnauthenticatedAccess without a uid."""
        uid = self.get_current_user_id()
        if not uid:
            raise UnauthenticatedAccess()
        return self.registry.open(uid)

    def require_session_json(self) -> tuple[Optional[PolicySession], Optional[dict]]:
        """Require a session for JSON endpoints, return error if not authenticated."""
        try:
            return self.require_session(), None
        except UnauthenticatedAccess as e:
            return None, {"error": e.message}

    def payload(self, session: PolicySession, data: dict):
        """JSON response carrying ``data`` plus the session's pending notices."""
        body = dict(data)
        body["notices"] = [notice.to_dict() for notice in session.notifier.drain()]
        return jsonify(body)
