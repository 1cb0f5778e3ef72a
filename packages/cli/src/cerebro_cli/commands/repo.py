"""repo commands — track, list, remove and select repositories."""

from __future__ import annotations

from datetime import datetime

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cerebro_cli.app import handle_errors, pass_app

console = Console()


@click.group("repo")
def repo_group():
    """Manage tracked repositories."""


@repo_group.command("add")
@click.argument("path", type=click.Path(file_okay=False))
@click.option("--base-branch", default=None, help="Branch to diff against. Auto-detected when omitted.")
@pass_app
@handle_errors
def add_cmd(app, path: str, base_branch: str | None):
    """Track the git repository at PATH."""
    repo = app.registry.add(path, base_branch=base_branch)
    console.print(f"Added repository: [bold]{escape(repo.name)}[/bold] ({escape(repo.path)})")
    console.print(f"ID: {repo.id}")
    console.print(f"Base branch: {escape(repo.base_branch)}")


@repo_group.command("list")
@pass_app
@handle_errors
def list_cmd(app):
    """List tracked repositories. Entries whose directory is gone are pruned."""
    repos = app.registry.list_repos()
    if not repos:
        console.print("[yellow]No repositories tracked. Use 'cerebro repo add <path>' to add one.[/yellow]")
        return

    current_id = app.store.get_current_repo_id()
    table = Table(title="Tracked repositories", show_header=True, header_style="bold cyan")
    table.add_column("", width=1)
    table.add_column("Name", style="bold")
    table.add_column("Path", overflow="fold")
    table.add_column("Base")
    table.add_column("ID", overflow="fold")
    table.add_column("Added", width=16)

    for repo in repos:
        added = datetime.fromtimestamp(repo.added_at / 1000).strftime("%Y-%m-%d %H:%M")
        table.add_row(
            "*" if repo.id == current_id else "",
            escape(repo.name),
            escape(repo.path),
            escape(repo.base_branch),
            repo.id,
            added,
        )

    console.print(table)


@repo_group.command("remove")
@click.argument("repo_id")
@pass_app
@handle_errors
def remove_cmd(app, repo_id: str):
    """Stop tracking a repository and delete its review state."""
    app.registry.remove(repo_id)
    console.print(f"Removed repository: {repo_id}")


@repo_group.command("set-current")
@click.argument("repo_id")
@pass_app
@handle_errors
def set_current_cmd(app, repo_id: str):
    """Make REPO_ID the repository used when no --repo is given."""
    repo = app.registry.set_current(repo_id)
    console.print(f"Current repository set to: [bold]{escape(repo.name)}[/bold]")
