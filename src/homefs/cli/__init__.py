"""Command-line interface for homefs."""

from homefs.cli.app import app

__all__ = ["app"]
