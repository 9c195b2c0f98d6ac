"""
Configuration management for the quota and access-tier policy engine.
Handles loading, validating, and providing access to application settings.
"""

import os
import json
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

ON_ERROR_CHOICES = ("allow", "deny")


@dataclass
class BackendConfig:
    """Remote backend settings."""
    provider: str
    url: str
    api_key: str
    timeout: int
    atomic_consume_rpc: Optional[str] = None


@dataclass
class RateLimitRule:
    """Cap and window for one kind of action."""
    max_attempts: int
    window_minutes: int
    on_error: str = "allow"
    audit_action: Optional[str] = None


@dataclass
class RateLimitConfig:
    """Rate limiter settings."""
    discovery: RateLimitRule
    generic: RateLimitRule
    actions: Dict[str, RateLimitRule] = field(default_factory=dict)


@dataclass
class SwipeConfig:
    """Swipe quota settings."""
    free_daily_limit: int
    unlimited_display: int


@dataclass
class PricingConfig:
    """Checkout price reference per paid tier."""
    price_refs: Dict[str, str]


@dataclass
class RewardConfig:
    """Daily reward values."""
    points_value: int
    item_value: int


@dataclass
class SessionConfig:
    """Live session bookkeeping."""
    idle_ttl_minutes: int
    max_sessions: int


@dataclass
class AppConfig:
    """Application configuration settings."""
    host: str
    port: int
    debug: bool


def _rule_from_dict(data: Dict[str, Any], defaults: Dict[str, Any]) -> RateLimitRule:
    merged = dict(defaults)
    merged.update(data or {})
    on_error = str(merged.get("on_error", "allow")).lower()
    if on_error not in ON_ERROR_CHOICES:
        raise ValueError(f"on_error must be one of {ON_ERROR_CHOICES}, got '{on_error}'")
    return RateLimitRule(
        max_attempts=int(merged["max_attempts"]),
        window_minutes=int(merged["window_minutes"]),
        on_error=on_error,
        audit_action=merged.get("audit_action"),
    )


class ConfigManager:
    """Manages application configuration loading and access."""

    def __init__(self, config_file: str = "policy_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        # Start with default config
        self._config = self._get_default_config()

        # Load base config from file
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                    self._merge_config(file_config)
            except (json.JSONDecodeError, FileNotFoundError):
                # Keep default config if file is invalid or not found
                pass

        # Override with environment variables
        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "backend": {
                "provider": "memory",
                "url": "",
                "api_key": "",
                "timeout": 10,
                "atomic_consume_rpc": None
            },
            "rate_limits": {
                "discovery": {
                    "max_attempts": 30,
                    "window_minutes": 5,
                    "on_error": "allow",
                    "audit_action": "discovery_profiles_accessed"
                },
                "generic": {
                    "max_attempts": 10,
                    "window_minutes": 60,
                    "on_error": "allow"
                },
                "actions": {}
            },
            "swipes": {
                "free_daily_limit": 50,
                "unlimited_display": 999
            },
            "pricing": {
                "basic": "price_basic_monthly",
                "premium": "price_premium_monthly",
                "elite": "price_elite_monthly"
            },
            "rewards": {
                "points_value": 50,
                "item_value": 1
            },
            "sessions": {
                "idle_ttl_minutes": 30,
                "max_sessions": 1000
            },
            "app": {
                "host": "0.0.0.0",
                "port": 8080,
                "debug": False
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config:
                if isinstance(values, dict):
                    if section == "rate_limits":
                        # one level deeper so a file can override a single field of a rule
                        for rule_name, rule in values.items():
                            current = self._config[section].get(rule_name)
                            if isinstance(current, dict) and isinstance(rule, dict):
                                current.update(rule)
                            else:
                                self._config[section][rule_name] = rule
                    else:
                        self._config[section].update(values)
                else:
                    self._config[section] = values
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        # Backend settings
        if os.getenv("POLICY_BACKEND"):
            self._config["backend"]["provider"] = os.getenv("POLICY_BACKEND")

        if os.getenv("SUPABASE_URL"):
            self._config["backend"]["url"] = os.getenv("SUPABASE_URL")

        if os.getenv("SUPABASE_ANON_KEY"):
            self._config["backend"]["api_key"] = os.getenv("SUPABASE_ANON_KEY")

        if os.getenv("BACKEND_TIMEOUT"):
            self._config["backend"]["timeout"] = int(os.getenv("BACKEND_TIMEOUT"))

        if os.getenv("ATOMIC_CONSUME_RPC"):
            self._config["backend"]["atomic_consume_rpc"] = os.getenv("ATOMIC_CONSUME_RPC")

        # Rate limit settings
        if os.getenv("DISCOVERY_MAX_QUERIES"):
            self._config["rate_limits"]["discovery"]["max_attempts"] = int(os.getenv("DISCOVERY_MAX_QUERIES"))

        if os.getenv("DISCOVERY_WINDOW_MINUTES"):
            self._config["rate_limits"]["discovery"]["window_minutes"] = int(os.getenv("DISCOVERY_WINDOW_MINUTES"))

        if os.getenv("RATE_LIMIT_MAX_ATTEMPTS"):
            self._config["rate_limits"]["generic"]["max_attempts"] = int(os.getenv("RATE_LIMIT_MAX_ATTEMPTS"))

        if os.getenv("RATE_LIMIT_WINDOW_MINUTES"):
            self._config["rate_limits"]["generic"]["window_minutes"] = int(os.getenv("RATE_LIMIT_WINDOW_MINUTES"))

        if os.getenv("RATE_LIMIT_ON_ERROR"):
            on_error = os.getenv("RATE_LIMIT_ON_ERROR").lower()
            self._config["rate_limits"]["discovery"]["on_error"] = on_error
            self._config["rate_limits"]["generic"]["on_error"] = on_error

        # Swipe settings
        if os.getenv("FREE_DAILY_SWIPES"):
            self._config["swipes"]["free_daily_limit"] = int(os.getenv("FREE_DAILY_SWIPES"))

        # Session settings
        if os.getenv("SESSION_IDLE_MINUTES"):
            self._config["sessions"]["idle_ttl_minutes"] = int(os.getenv("SESSION_IDLE_MINUTES"))

        if os.getenv("MAX_SESSIONS"):
            self._config["sessions"]["max_sessions"] = int(os.getenv("MAX_SESSIONS"))

        # App settings
        if os.getenv("APP_HOST"):
            self._config["app"]["host"] = os.getenv("APP_HOST")

        if os.getenv("APP_PORT"):
            self._config["app"]["port"] = int(os.getenv("APP_PORT"))

        if os.getenv("APP_DEBUG"):
            self._config["app"]["debug"] = os.getenv("APP_DEBUG").lower() == "true"

    def get_backend_config(self) -> BackendConfig:
        """Get backend configuration."""
        backend_config = self._config["backend"]
        return BackendConfig(
            provider=backend_config["provider"],
            url=backend_config["url"],
            api_key=backend_config["api_key"],
            timeout=int(backend_config["timeout"]),
            atomic_consume_rpc=backend_config.get("atomic_consume_rpc") or None
        )

    def get_rate_limit_config(self) -> RateLimitConfig:
        """Get rate limit configuration. Raises ValueError on an invalid on_error."""
        rl_config = self._config["rate_limits"]
        generic_defaults = rl_config["generic"]
        return RateLimitConfig(
            discovery=_rule_from_dict(rl_config["discovery"], {}),
            generic=_rule_from_dict(generic_defaults, {}),
            actions={
                name: _rule_from_dict(rule, generic_defaults)
                for name, rule in (rl_config.get("actions") or {}).items()
            }
        )

    def get_swipe_config(self) -> SwipeConfig:
        """Get swipe quota configuration."""
        swipe_config = self._config["swipes"]
        return SwipeConfig(
            free_daily_limit=int(swipe_config["free_daily_limit"]),
            unlimited_display=int(swipe_config["unlimited_display"])
        )

    def get_pricing_config(self) -> PricingConfig:
        """Get pricing configuration."""
        return PricingConfig(price_refs=dict(self._config["pricing"]))

    def get_reward_config(self) -> RewardConfig:
        """Get daily reward configuration."""
        reward_config = self._config["rewards"]
        return RewardConfig(
            points_value=int(reward_config["points_value"]),
            item_value=int(reward_config["item_value"])
        )

    def get_session_config(self) -> SessionConfig:
        """Get session expiry configuration."""
        session_config = self._config["sessions"]
        return SessionConfig(
            idle_ttl_minutes=int(session_config["idle_ttl_minutes"]),
            max_sessions=int(session_config["max_sessions"])
        )

    def get_app_config(self) -> AppConfig:
        """Get application configuration."""
        app_config = self._config["app"]
        return AppConfig(
            host=app_config["host"],
            port=int(app_config["port"]),
            debug=bool(app_config["debug"])
        )

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return self._config.copy()

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2, ensure_ascii=False)


# Global configuration instance
config_manager = ConfigManager()


def get_backend_config() -> BackendConfig:
    """Get backend configuration."""
    return config_manager.get_backend_config()


def get_rate_limit_config() -> RateLimitConfig:
    """Get rate limit configuration."""
    return config_manager.get_rate_limit_config()


def get_swipe_config() -> SwipeConfig:
    """Get swipe quota configuration."""
    return config_manager.get_swipe_config()


def get_pricing_config() -> PricingConfig:
    """Get pricing configuration."""
    return config_manager.get_pricing_config()


def get_reward_config() -> RewardConfig:
    """Get daily reward configuration."""
    return config_manager.get_reward_config()


def get_session_config() -> SessionConfig:
    """Get session expiry configuration."""
    return config_manager.get_session_config()


def get_app_config() -> AppConfig:
    """Get application configuration."""
    return config_manager.get_app_config()


def reload_config() -> None:
    """Reload configuration."""
    config_manager.reload()


def save_config() -> None:
    """Save configuration to file."""
    config_manager.save_config()
