"""config commands — show and change settings."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from cerebro_cli.app import handle_errors, pass_app

console = Console()

_KEYS = ("base-branch", "port")


@click.group("config")
def config_group():
    """Show or change configuration."""


@config_group.command("show")
@pass_app
@handle_errors
def show_cmd(app):
    """Show the current configuration."""
    current = app.store.get_current_repo()

    console.print("[bold]Configuration[/bold]\n")
    console.print(f"  Default port: {app.config['default_port']}")
    console.print(f"  Store:        {escape(str(app.config['store_path']))}")
    console.print(f"  GitHub token: {'set' if app.config.get('github_token') else 'not set'}")
    if current is not None:
        console.print(f"  Current repo: {escape(current.name)} ({escape(current.path)})")
        console.print(f"  Base branch:  {escape(current.base_branch)}")


@config_group.command("set")
@click.argument("key", type=click.Choice(_KEYS))
@click.argument("value")
@pass_app
@handle_errors
def set_cmd(app, key: str, value: str):
    """Set a configuration value.

    \b
    base-branch  branch the current repository is diffed against
    port         default port for the review server
    """
    from cerebro_core.config import save_config

    if key == "base-branch":
        current = app.store.get_current_repo()
        if current is None:
            raise click.UsageError("No current repository. Use 'cerebro repo add' first.")
        app.store.update_repo(current.id, base_branch=value)
        console.print(f"Set base branch to: {escape(value)}")
        return

    try:
        port = int(value)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not a number.", param_hint="VALUE")
    if not 0 < port < 65536:
        raise click.BadParameter(f"{port} is not a valid port.", param_hint="VALUE")
    app.config["default_port"] = port
    save_config(app.config, app.config_path)
    console.print(f"Set default port to: {port}")
