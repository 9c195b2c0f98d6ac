"""
Flask host for the quota and access-tier policy engine.
"""

import logging
from typing import Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config_manager import ConfigManager
from quota_policy.backends import create_backend
from quota_policy.backends.base import PolicyBackend

from .user_session.factory import create_user_session_module
from .subscription.routes import create_subscription_routes
from .swipes.routes import create_swipes_routes
from .access_gate.routes import create_access_gate_routes
from .rate_limit.routes import create_rate_limit_routes
from .daily_rewards.routes import create_daily_rewards_routes

logger = logging.getLogger(__name__)


def create_app(
    config_manager: Optional[ConfigManager] = None,
    backend: Optional[PolicyBackend] = None,
) -> Flask:
    """Build the Flask application.

    Args:
        config_manager: Configuration source; a default ConfigManager if omitted
        backend: Remote backend; built from the backend config if omitted

    Returns:
        Configured Flask app. The session registry is in
        ``app.extensions["policy_sessions"]``.
    """
    config_manager = config_manager or ConfigManager()
    if backend is None:
        backend = create_backend(
            config_manager.get_backend_config(),
            swipe_config=config_manager.get_swipe_config(),
            rate_limit_config=config_manager.get_rate_limit_config(),
        )

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(
        app.wsgi_app,
        x_proto=1,     # trust 1 hop for X-Forwarded-Proto
        x_host=1,      # trust 1 hop for X-Forwarded-Host
        x_prefix=1)    # trust 1 hop for X-Forwarded-Prefix

    # -------------------------------------------------------------------------
    # Modules
    # -------------------------------------------------------------------------

    session_module = create_user_session_module(backend, config_manager)
    session_service = session_module["service"]
    app.extensions["policy_sessions"] = session_module["registry"]

    app.register_blueprint(session_module["blueprint"])
    app.register_blueprint(create_subscription_routes(session_service))
    app.register_blueprint(create_swipes_routes(session_service))
    app.register_blueprint(create_access_gate_routes(session_service))
    app.register_blueprint(create_rate_limit_routes(session_service))
    app.register_blueprint(create_daily_rewards_routes(session_service))

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    @app.route("/test", methods=["GET"])
    def test_endpoint():
        """Test endpoint to verify routing is working."""
        return jsonify({
            "status": "ok",
            "message": "Test endpoint working",
            "path": request.path,
            "sessions": len(session_module["registry"]),
        })

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.name, "message": e.description}), e.code
        logger.exception(f"Unhandled error on {request.path}")
        return jsonify({"error": "Internal error", "message": str(e)}), 500

    logger.info(f"Policy app created with {type(backend).__name__}")
    return app
