"""
Swipe quota routes.
"""
from flask import Blueprint, jsonify

from ..user_session.services import SessionService


def _swipe_status(manager) -> dict:
    return {
        "can_swipe": manager.can_swipe(),
        "remaining_swipes": manager.display_remaining,
        "is_premium": manager.is_premium,
    }


def create_swipes_routes(session_service: SessionService) -> Blueprint:
    """Create swipe quota routes."""
    bp = Blueprint('swipes', __name__)

    @bp.route("/api/swipes", methods=["GET"])
    def get_swipes():
        """Current swipe allowance."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        return session_service.payload(session, _swipe_status(session.swipes))

    @bp.route("/api/swipes/consume", methods=["POST"])
    def consume_swipe():
        """Spend one swipe."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        success = session.swipes.consume_swipe()
        data = _swipe_status(session.swipes)
        data["success"] = success
        return session_service.payload(session, data)

    @bp.route("/api/swipes/refresh", methods=["POST"])
    def refresh_swipes():
        """Reload the allowance from the server."""
        session, error = session_service.require_session_json()
        if error:
            return jsonify(error), 401
        session.swipes.refresh()
        return session_service.payload(session, _swipe_status(session.swipes))

    return bp
