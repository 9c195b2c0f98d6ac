"""
Factory for creating the user session module.
"""
from quota_policy.backends.base import PolicyBackend
from .session import SessionRegistry
from .services import SessionService
from .routes import create_session_routes


def create_user_session_module(backend: PolicyBackend, config_manager) -> dict:
    """Create user session module with registry, service and routes.

    Args:
        backend: Remote backend shared by all sessions
        config_manager: ConfigManager supplying component settings

    Returns:
        Dictionary containing the registry, service and blueprint
    """
    session_config = config_manager.get_session_config()
    registry = SessionRegistry(
        backend,
        config_manager,
        idle_ttl_minutes=session_config.idle_ttl_minutes,
        max_sessions=session_config.max_sessions
    )
    service = SessionService(registry)
    blueprint = create_session_routes(service)

    return {
        "registry": registry,
        "service": service,
        "blueprint": blueprint
    }
