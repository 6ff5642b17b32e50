"""Configuration package for homefs."""

from .manager import (
    ConfigurationError,
    deep_merge,
    get_config_path,
    load_config,
    load_settings,
    merge_with_env,
    save_config,
)
from .schema import HomeFSSettings, SandboxConfig, ServerConfig

__all__ = [
    # Schema
    "HomeFSSettings",
    "ServerConfig",
    "SandboxConfig",
    # Manager
    "ConfigurationError",
    "get_config_path",
    "load_config",
    "load_settings",
    "save_config",
    "merge_with_env",
    "deep_merge",
]
