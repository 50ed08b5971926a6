"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_float, env_int, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .mealie import MealieConfig, get_mealie_config
from .sync import SyncConfig, get_sync_config

__all__ = [
    "ConfigurationError",
    "InvalidConfigurationError",
    "MealieConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SyncConfig",
    "configure_logging",
    "env_bool",
    "env_float",
    "env_int",
    "get_mealie_config",
    "get_sync_config",
    "require_env_vars",
]
