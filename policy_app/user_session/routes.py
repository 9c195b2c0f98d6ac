"""
Session routes for login and logout.
"""
from flask import Blueprint, request
from .services import SessionService


def create_session_routes(session_service: SessionService) -> Blueprint:
    """Create session routes."""
    bp = Blueprint('user_session', __name__)

    @bp.route("/login", methods=["POST"])
    def login():
        """Open a policy session for the given uid."""
        data = request.get_json(silent=True) or {}
        uid = data.get("uid") or request.form.get("uid", "")
        return session_service.login(uid)

    @bp.route("/logout", methods=["POST"])
    def logout():
        """Close the current user's policy session."""
        return session_service.logout()

    return bp
