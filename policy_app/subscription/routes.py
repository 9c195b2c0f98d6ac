"""
Subscription routes: current tier, refetch and payment sessions.
"""
from flask import Blueprint, jsonify

from quota_policy.tiers import SubscriptionTier
from ..user_session.services import SessionService


def create_subscription_routes(session_service: SessionService) -> Blueprint:
    """Create subscription routes."""
    bp = Blueprint('subscription', __name__)

    @bp.route("/api/subscription", methods=["GET"])
    def get_subscription():
        """Cached subscription state of the current user."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        return session_service.payload(session, session.resolver.state.to_dict())

    @bp.route("/api/subscription/refresh", methods=["POST"])
    def refresh_subscription():
        """Refetch subscription and swipe quota, e.g. after checkout."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        refreshed = session.resolver.fetch_subscription_data()
        data = session.resolver.state.to_dict()
        data["refreshed"] = refreshed
        return session_service.payload(session, data)

    @bp.route("/api/subscription/checkout/<tier>", methods=["POST"])
    def create_checkout(tier):
        """Start a checkout for a paid tier."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        if not SubscriptionTier.is_valid(tier) or tier == SubscriptionTier.FREE.value:
            return jsonify({"error": f"Unknown paid tier '{tier}'"}), 400
        url = session.resolver.create_checkout_session(SubscriptionTier(tier))
        return session_service.payload(session, {"url": url})

    @bp.route("/api/subscription/portal", methods=["POST"])
    def create_portal():
        """Open the customer portal."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        url = session.resolver.create_portal_session()
        return session_service.payload(session, {"url": url})

    return bp
