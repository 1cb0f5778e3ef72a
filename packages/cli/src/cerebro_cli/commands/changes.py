"""Commands that change review or repository state: viewed marks, index and commits."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from cerebro_cli.app import handle_errors, pass_app, repo_option
from cerebro_core.models import DIFF_MODES, MODE_BRANCH

console = Console()


@click.group("viewed")
def viewed_group():
    """Mark files as reviewed at the current commit."""


def _set_viewed(app, repo_ref: str | None, file_path: str, mode: str, viewed: bool) -> None:
    repo = app.registry.resolve(repo_ref)
    coordinate = app.resolver.set_file_viewed(repo, file_path, viewed, mode=mode)
    state = "viewed" if viewed else "not viewed"
    console.print(f"{escape(file_path)} marked {state} at {coordinate}")


@viewed_group.command("mark")
@click.argument("file_path")
@repo_option
@click.option("--mode", type=click.Choice(DIFF_MODES), default=MODE_BRANCH, show_default=True)
@pass_app
@handle_errors
def mark_cmd(app, file_path: str, repo_ref: str | None, mode: str):
    """Mark FILE_PATH as viewed."""
    _set_viewed(app, repo_ref, file_path, mode, True)


@viewed_group.command("unmark")
@click.argument("file_path")
@repo_option
@click.option("--mode", type=click.Choice(DIFF_MODES), default=MODE_BRANCH, show_default=True)
@pass_app
@handle_errors
def unmark_cmd(app, file_path: str, repo_ref: str | None, mode: str):
    """Clear the viewed mark on FILE_PATH."""
    _set_viewed(app, repo_ref, file_path, mode, False)


@click.command("stage")
@click.argument("file_path")
@repo_option
@pass_app
@handle_errors
def stage_cmd(app, file_path: str, repo_ref: str | None):
    """Add FILE_PATH to the index."""
    repo = app.registry.resolve(repo_ref)
    app.adapters.get(repo.path).stage_file(file_path)
    console.print(f"Staged {escape(file_path)}")


@click.command("unstage")
@click.argument("file_path")
@repo_option
@pass_app
@handle_errors
def unstage_cmd(app, file_path: str, repo_ref: str | None):
    """Remove FILE_PATH from the index, keeping the working copy."""
    repo = app.registry.resolve(repo_ref)
    app.adapters.get(repo.path).unstage_file(file_path)
    console.print(f"Unstaged {escape(file_path)}")


@click.command("discard")
@click.argument("file_path")
@repo_option
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@pass_app
@handle_errors
def discard_cmd(app, file_path: str, repo_ref: str | None, yes: bool):
    """Throw away working-tree changes to FILE_PATH. Untracked files are deleted."""
    repo = app.registry.resolve(repo_ref)
    if not yes:
        click.confirm(f"Discard all changes to {file_path}?", abort=True)
    app.adapters.get(repo.path).discard_file(file_path)
    console.print(f"Discarded changes to {escape(file_path)}")


@click.command("commit")
@click.option("--message", "-m", required=True, help="Commit message.")
@repo_option
@pass_app
@handle_errors
def commit_cmd(app, message: str, repo_ref: str | None):
    """Commit the staged changes."""
    repo = app.registry.resolve(repo_ref)
    commit = app.adapters.get(repo.path).commit(message)
    console.print(f"[green]Committed {commit}[/green] on {escape(repo.name)}")
