"""Utility functions for CLI module."""

import logging
import sys
from pathlib import Path

import typer
from rich.console import Console

from homefs.cli.constants import ExitCodes
from homefs.config import ConfigurationError, HomeFSSettings, get_config_path, load_settings
from homefs.sandbox.workspace import Workspace

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_console() -> Console:
    """Create the Rich console used for CLI output."""
    return Console()


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    """Configure root logging for the process.

    Logs go to stderr (so command output on stdout stays machine-readable),
    or to log_file when given.

    Args:
        level: Log level name (case-insensitive)
        log_file: Optional file to append logs to
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            level=numeric_level,
            format=LOG_FORMAT,
            filename=str(log_file),
            filemode="a",
            force=True,
        )
    else:
        logging.basicConfig(level=numeric_level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def mask_token(token: str) -> str:
    """Mask a bearer token for display."""
    if not token:
        return "(disabled)"
    if len(token) <= 6:
        return "****"
    return f"****{token[-4:]}"


def load_runtime(
    console: Console, config_path: Path | None, log_level: str | None = None
) -> tuple[HomeFSSettings, Workspace, Path]:
    """Load settings, configure logging and build the workspace.

    Exits with GENERAL_ERROR when the configuration cannot be loaded.

    Returns:
        Tuple of (settings, workspace, config path)
    """
    path = config_path or get_config_path()
    try:
        settings = load_settings(path)
    except ConfigurationError as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(ExitCodes.GENERAL_ERROR)

    setup_logging(log_level or settings.server.log_level)
    return settings, Workspace.from_settings(settings, path), path
