"""
Access gate routes.
"""
from flask import Blueprint, jsonify

from quota_policy.tiers import SubscriptionTier
from ..user_session.services import SessionService


def create_access_gate_routes(session_service: SessionService) -> Blueprint:
    """Create access gate routes."""
    bp = Blueprint('access_gate', __name__)

    @bp.route("/api/access/<required_tier>", methods=["GET"])
    def check_access(required_tier):
        """Whether the current user may use a feature requiring ``required_tier``."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        if not SubscriptionTier.is_valid(required_tier):
            return jsonify({"error": f"Unknown tier '{required_tier}'"}), 400
        decision = session.access_gate.require(SubscriptionTier(required_tier))
        return session_service.payload(session, decision.to_dict())

    return bp
