"""CLI entry point for homefs."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from rich.table import Table

from homefs import __version__
from homefs.cli.constants import ExitCodes
from homefs.cli.utils import get_console, load_runtime, mask_token
from homefs.tools.registry import ToolRegistry, UnknownToolError

app = typer.Typer(help="homefs - Sandboxed home directory tools over JSON-RPC")

console = get_console()

logger = logging.getLogger(__name__)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Path = typer.Option(
        None, "--config", "-c", help="Configuration file (default: $HOMEFS_CONFIG or ~/.homefs.json)"
    ),
    log_level: str = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"
    ),
    version_flag: bool = typer.Option(False, "--version", help="Show version"),
) -> None:
    """homefs - Sandboxed filesystem tools for remote agents.

    \b
    Examples:
        homefs serve                                  # Serve JSON-RPC on 127.0.0.1:8765
        homefs serve --host 0.0.0.0 --port 9000       # Listen on all interfaces
        homefs tools                                  # List available tools
        homefs call fs_list '{"path": "~/apps"}'      # Run one tool locally
        homefs info                                   # Show sandbox directories
        homefs config init                            # Create a configuration file
    """
    if version_flag:
        console.print(f"homefs version {__version__}")
        raise typer.Exit()

    ctx.obj = {"config_path": config, "log_level": log_level}

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command("serve")
def serve_command(
    ctx: typer.Context,
    host: str = typer.Option(None, "--host", help="Interface to bind (overrides configuration)"),
    port: int = typer.Option(None, "--port", help="Port to listen on (overrides configuration)"),
) -> None:
    """Serve the JSON-RPC endpoint."""
    from homefs.server.app import run_server

    settings, workspace, _ = load_runtime(
        console, ctx.obj["config_path"], ctx.obj["log_level"]
    )

    overrides = {key: value for key, value in {"host": host, "port": port}.items() if value}
    if overrides:
        settings = settings.model_copy(
            update={"server": settings.server.model_copy(update=overrides)}
        )

    if not settings.auth_enabled:
        console.print(
            "[yellow]Warning:[/yellow] no token configured, authentication is disabled"
        )

    run_server(settings, workspace)


@app.command("tools")
def tools_command(ctx: typer.Context) -> None:
    """List the tools exposed to clients."""
    _, workspace, _ = load_runtime(console, ctx.obj["config_path"], ctx.obj["log_level"])
    registry = ToolRegistry(workspace)

    table = Table(title="homefs tools")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Arguments")
    table.add_column("Description")

    for definition in registry.definitions():
        schema = definition["inputSchema"]
        required = set(schema.get("required", []))
        arguments = ", ".join(
            f"{name}*" if name in required else name for name in schema.get("properties", {})
        )
        table.add_row(definition["name"], arguments or "-", definition["description"])

    console.print(table)
    console.print("[dim]* required argument[/dim]")


@app.command("call")
def call_command(
    ctx: typer.Context,
    tool: str = typer.Argument(..., help="Tool name, e.g. fs_read"),
    arguments: str = typer.Argument("{}", help="Tool arguments as a JSON object"),
) -> None:
    """Run a single tool locally and print its JSON response.

    \b
    Examples:
        homefs call fs_info
        homefs call fs_read '{"path": "~/logs/app.log", "max_bytes": 1024}'
    """
    try:
        parsed = json.loads(arguments)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON arguments:[/red] {e}")
        raise typer.Exit(ExitCodes.USAGE_ERROR)
    if not isinstance(parsed, dict):
        console.print("[red]Arguments must be a JSON object[/red]")
        raise typer.Exit(ExitCodes.USAGE_ERROR)

    _, workspace, _ = load_runtime(console, ctx.obj["config_path"], ctx.obj["log_level"])
    registry = ToolRegistry(workspace)

    try:
        response = asyncio.run(registry.call(tool, parsed))
    except UnknownToolError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(ExitCodes.USAGE_ERROR)

    typer.echo(json.dumps(response, indent=2, ensure_ascii=False))
    if not response.get("success"):
        raise typer.Exit(ExitCodes.GENERAL_ERROR)


@app.command("info")
def info_command(ctx: typer.Context) -> None:
    """Show sandbox directories and server settings."""
    settings, workspace, config_path = load_runtime(
        console, ctx.obj["config_path"], ctx.obj["log_level"]
    )

    console.print()
    console.print("[bold]Sandbox:[/bold]")
    console.print(f" • Home: [cyan]{workspace.home_dir}[/cyan]")
    console.print(f" • Base: [cyan]{workspace.base_dir}[/cyan]")
    console.print(f" • Protected entries: {len(workspace.protected)}")

    console.print("\n[bold]Server:[/bold]")
    console.print(f" • Listen: {settings.server.host}:{settings.server.port}")
    console.print(f" • Token: {mask_token(settings.server.token)}")
    console.print(
        f" • Rate limit: {settings.server.rate_limit_requests} requests / "
        f"{settings.server.rate_limit_window}s"
    )
    console.print(f" • Log level: [magenta]{settings.server.log_level}[/magenta]")

    status = "found" if config_path.exists() else "not found, using defaults"
    console.print(f"\n[bold]Configuration:[/bold] {config_path} ({status})")
    console.print()


# Config command group
config_app = typer.Typer(help="Manage homefs configuration")
app.add_typer(config_app, name="config")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    """Config command callback - shows help if no subcommand given."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@config_app.command("show")
def config_show_command(ctx: typer.Context) -> None:
    """Display the effective configuration (file plus environment)."""
    from homefs.cli.config_commands import config_show

    config_show(console, ctx.obj["config_path"])


@config_app.command("init")
def config_init_command(
    ctx: typer.Context,
    token: str = typer.Option(
        None, "--token", help="Bearer token (a random token is generated if omitted)"
    ),
    base_dir: str = typer.Option("~", "--base-dir", help="Root for relative paths"),
    no_auth: bool = typer.Option(False, "--no-auth", help="Disable authentication"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Create a configuration file."""
    from homefs.cli.config_commands import config_init

    config_init(
        console,
        ctx.obj["config_path"],
        token=token,
        base_dir=base_dir,
        no_auth=no_auth,
        force=force,
    )


if __name__ == "__main__":
    app()
