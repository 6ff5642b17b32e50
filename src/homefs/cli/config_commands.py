"""CLI commands for managing homefs configuration."""

import secrets
from pathlib import Path

import typer
from rich.console import Console

from homefs.cli.constants import ExitCodes
from homefs.cli.utils import mask_token
from homefs.config import (
    ConfigurationError,
    HomeFSSettings,
    get_config_path,
    load_settings,
    save_config,
)
from homefs.config.schema import SandboxConfig, ServerConfig


def config_show(console: Console, config_path: Path | None = None) -> None:
    """Display current effective configuration with the token masked."""
    path = config_path or get_config_path()

    try:
        settings = load_settings(path)
    except ConfigurationError as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(ExitCodes.GENERAL_ERROR)

    if path.exists():
        console.print(f"[bold cyan]Configuration[/bold cyan] ({path})\n")
    else:
        console.print(f"[yellow]No configuration file at {path}[/yellow]")
        console.print("[dim]Showing defaults plus environment overrides.[/dim]\n")

    data = settings.model_dump()
    data["server"]["token"] = mask_token(settings.server.token)
    console.print_json(data=data)


def config_init(
    console: Console,
    config_path: Path | None = None,
    token: str | None = None,
    base_dir: str = "~",
    no_auth: bool = False,
    force: bool = False,
) -> None:
    """Write a new configuration file.

    A random token is generated unless one is given or authentication is
    disabled. The token is printed once.
    """
    path = config_path or get_config_path()
    if path.exists() and not force:
        console.print(f"[red]Configuration file already exists:[/red] {path}")
        console.print("[dim]Use --force to overwrite it.[/dim]")
        raise typer.Exit(ExitCodes.GENERAL_ERROR)

    if no_auth:
        token = ""
    elif not token:
        token = secrets.token_urlsafe(32)

    settings = HomeFSSettings(
        server=ServerConfig(token=token),
        sandbox=SandboxConfig(base_dir=base_dir),
    )

    try:
        save_config(settings, path)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(ExitCodes.GENERAL_ERROR)

    console.print(f"[green]✓[/green] Configuration saved to {path}")
    if settings.auth_enabled:
        console.print(f"Bearer token: [bold]{settings.server.token}[/bold]")
        console.print("[dim]Clients send it as 'Authorization: Bearer <token>'.[/dim]")
    else:
        console.print("[yellow]Authentication is disabled.[/yellow]")
