"""
Rate limit routes.
"""
from flask import Blueprint, jsonify

from ..ledger.client import SWIPE_ACTION
from ..user_session.services import SessionService

# Swipes are counted by the swipe quota manager, never through the generic limiter
RESERVED_ACTIONS = (SWIPE_ACTION,)


def _reserved_error(action_type: str):
    return jsonify({"error": f"Action '{action_type}' is not rate limited here"}), 400


def create_rate_limit_routes(session_service: SessionService) -> Blueprint:
    """Create rate limit routes."""
    bp = Blueprint('rate_limit', __name__)

    @bp.route("/api/discovery/check", methods=["POST"])
    def check_discovery():
        """Check the discovery search limit."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        limiter = session.discovery_limiter
        allowed = limiter.check_rate_limit()
        return session_service.payload(session, {
            "allowed": allowed,
            "state": limiter.state.to_dict(),
        })

    @bp.route("/api/rate-limit/<action_type>", methods=["POST"])
    def check_action(action_type):
        """Check the limit for a named action."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        if action_type in RESERVED_ACTIONS:
            return _reserved_error(action_type)
        limiter = session.rate_limiter
        result = limiter.check(action_type)
        data = result.to_dict()
        data["state"] = limiter.state.to_dict()
        return session_service.payload(session, data)

    @bp.route("/api/rate-limit/<action_type>/record", methods=["POST"])
    def record_action(action_type):
        """Record that a named action was performed."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        if action_type in RESERVED_ACTIONS:
            return _reserved_error(action_type)
        recorded = session.rate_limiter.record(action_type)
        return session_service.payload(session, {"recorded": recorded})

    return bp
