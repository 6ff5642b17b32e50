"""Configuration file manager for loading, saving, and merging homefs settings."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from homefs.config.constants import CONFIG_FILE_NAME, CONFIG_PATH_ENV
from homefs.config.schema import HomeFSSettings
from homefs.sandbox.paths import determine_home_dir

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration operations fail."""

    pass


def get_config_path(home_dir: str | None = None) -> Path:
    """Get the path to the configuration file.

    Priority order:
        1. HOMEFS_CONFIG env var
        2. <home_dir>/.homefs.json
        3. <HOMEFS_HOME or the OS user's home>/.homefs.json

    Args:
        home_dir: Optional home directory to look in

    Returns:
        Path to the configuration file (which may not exist)
    """
    if env_path := os.getenv(CONFIG_PATH_ENV):
        return Path(env_path).expanduser()

    home = home_dir or determine_home_dir(os.getenv("HOMEFS_HOME"))
    return Path(home) / CONFIG_FILE_NAME


def load_config(config_path: Path | None = None) -> HomeFSSettings:
    """Load configuration from JSON file.

    Args:
        config_path: Optional path to config file. Defaults to get_config_path()

    Returns:
        HomeFSSettings loaded from file, or default settings if file doesn't exist

    Raises:
        ConfigurationError: If file exists but is invalid JSON or fails validation

    Example:
        >>> settings = load_config()
        >>> settings.sandbox.base_dir
        '~'
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        logger.debug(f"No configuration file at {config_path}, using defaults")
        return HomeFSSettings()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)

        return HomeFSSettings(**data)

    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in configuration file {config_path}: {e}") from e
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed for {config_path}:\n{e}") from e
    except TypeError as e:
        raise ConfigurationError(f"Configuration file {config_path} must contain an object") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}") from e


def save_config(settings: HomeFSSettings, config_path: Path | None = None) -> None:
    """Save configuration to JSON file.

    Sets restrictive permissions (0o600) since the file holds the bearer token.

    Args:
        settings: HomeFSSettings instance to save
        config_path: Optional path to config file. Defaults to get_config_path()

    Raises:
        ConfigurationError: If save operation fails
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        old_umask = os.umask(0o077)
        try:
            with open(config_path, "w", encoding="utf-8") as f:
                f.write(settings.model_dump_json_pretty())
            os.chmod(config_path, 0o600)
        finally:
            os.umask(old_umask)

    except OSError as e:
        raise ConfigurationError(f"Failed to save configuration to {config_path}: {e}") from e


def merge_with_env(settings: HomeFSSettings) -> dict[str, Any]:
    """Collect environment variable overrides for the given settings.

    Environment variables take precedence over file settings. A `.env` file in
    the working directory is loaded first.

    Args:
        settings: HomeFSSettings instance from file

    Returns:
        Dictionary of overrides shaped like the settings model

    Example:
        >>> os.environ["HOMEFS_TOKEN"] = "secret"
        >>> merge_with_env(HomeFSSettings())
        {'server': {'token': 'secret'}}
    """
    load_dotenv()

    env_overrides: dict[str, Any] = {}

    server_vars = {
        "HOMEFS_TOKEN": "token",
        "HOMEFS_HOST": "host",
        "HOMEFS_PORT": "port",
        "HOMEFS_LOG_LEVEL": "log_level",
    }
    for env_var, field in server_vars.items():
        value = os.getenv(env_var)
        if value is not None and value != "":
            env_overrides.setdefault("server", {})[field] = value

    if base_dir := os.getenv("HOMEFS_BASE_DIR"):
        env_overrides.setdefault("sandbox", {})["base_dir"] = base_dir
    if home_dir := os.getenv("HOMEFS_HOME"):
        env_overrides.setdefault("sandbox", {})["home_dir"] = home_dir

    return env_overrides


def deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge overrides into a copy of base.

    Args:
        base: Base dictionary
        overrides: Values that replace or extend base

    Returns:
        New merged dictionary
    """
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(config_path: Path | None = None) -> HomeFSSettings:
    """Load configuration file settings and apply environment overrides.

    Args:
        config_path: Optional path to config file

    Returns:
        Effective HomeFSSettings

    Raises:
        ConfigurationError: If the file or the merged settings are invalid
    """
    settings = load_config(config_path)
    overrides = merge_with_env(settings)
    if not overrides:
        return settings

    try:
        return HomeFSSettings(**deep_merge(settings.model_dump(), overrides))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid environment override:\n{e}") from e
