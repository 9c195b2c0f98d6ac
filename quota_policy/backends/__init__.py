"""
Backend implementations and the factory that picks one from configuration.
"""

from .base import PolicyBackend
from .memory import InMemoryBackend
from .supabase import SupabaseBackend


def create_backend(backend_config, swipe_config=None, rate_limit_config=None) -> PolicyBackend:
    """
    Create the backend named by ``backend_config.provider``.

    Args:
        backend_config: BackendConfig from config_manager
        swipe_config: SwipeConfig, used for the in-memory daily limit
        rate_limit_config: RateLimitConfig, used for the in-memory discovery cap

    Returns:
        A PolicyBackend instance
    """
    provider = (backend_config.provider or "").lower()

    if provider == "memory":
        kwargs = {}
        if swipe_config is not None:
            kwargs["free_daily_limit"] = swipe_config.free_daily_limit
        if rate_limit_config is not None:
            kwargs["discovery_max_queries"] = rate_limit_config.discovery.max_attempts
            kwargs["discovery_window_minutes"] = rate_limit_config.discovery.window_minutes
        return InMemoryBackend(**kwargs)

    if provider == "supabase":
        return SupabaseBackend(
            url=backend_config.url,
            api_key=backend_config.api_key,
            timeout=backend_config.timeout,
            atomic_consume_rpc=backend_config.atomic_consume_rpc,
        )

    raise ValueError(f"Unknown backend provider '{backend_config.provider}'")


__all__ = ["PolicyBackend", "InMemoryBackend", "SupabaseBackend", "create_backend"]
