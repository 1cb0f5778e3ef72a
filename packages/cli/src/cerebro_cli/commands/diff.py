"""diff command — list changed files, or show one file's patch."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from cerebro_cli.app import handle_errors, pass_app, repo_option
from cerebro_core.models import DIFF_MODES, MODE_BRANCH, MODE_WORKING

console = Console()

_STATUS_STYLE = {
    "added": "green",
    "deleted": "red",
    "modified": "yellow",
    "renamed": "cyan",
}


@click.command("diff")
@repo_option
@click.option(
    "--mode",
    type=click.Choice(DIFF_MODES),
    default=MODE_BRANCH,
    show_default=True,
    help="branch: HEAD vs the base branch. working: unstaged and untracked. staged: the index.",
)
@click.option("--base", "compare_branch", default=None, help="Compare against this branch instead of the repository's base.")
@click.option("--file", "file_path", default=None, help="Show the full patch for a single file.")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@pass_app
@handle_errors
def diff_cmd(app, repo_ref: str | None, mode: str, compare_branch: str | None, file_path: str | None, as_json: bool):
    """Show changed files and whether they have been viewed."""
    repo = app.registry.resolve(repo_ref)

    if file_path:
        file_diff = app.resolver.get_file_diff(repo, file_path, mode=mode, compare_branch=compare_branch)
        if as_json:
            click.echo(json.dumps(file_diff.to_dict(), indent=2))
            return
        viewed = " [green](viewed)[/green]" if file_diff.viewed else ""
        console.print(
            f"[bold]{escape(file_diff.path)}[/bold] {file_diff.status} "
            f"[green]+{file_diff.additions}[/green] [red]-{file_diff.deletions}[/red]{viewed}"
        )
        if file_diff.patch:
            console.print(Syntax(file_diff.patch, "diff", theme="ansi_dark", word_wrap=True))
        else:
            console.print("[dim]No textual changes.[/dim]")
        return

    response = app.resolver.get_diff(repo, mode=mode, compare_branch=compare_branch)
    if as_json:
        click.echo(json.dumps(response.to_dict(), indent=2))
        return

    header = f"[bold]{escape(repo.name)}[/bold] on {escape(response.branch)} @ {escape(response.commit)}"
    if mode == MODE_BRANCH:
        header += f" vs {escape(response.base_branch)}"
    console.print(f"{header} [dim]({mode})[/dim]")

    if not response.files:
        console.print("[green]No changes.[/green]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Status", width=9)
    table.add_column("File", overflow="fold")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")
    table.add_column("Viewed", width=6)
    if mode == MODE_WORKING:
        table.add_column("Staged", width=6)

    for f in response.files:
        style = _STATUS_STYLE.get(f.status, "white")
        row = [
            f"[{style}]{f.status}[/{style}]",
            escape(f.path),
            str(f.additions),
            str(f.deletions),
            "✓" if f.viewed else "",
        ]
        if mode == MODE_WORKING:
            row.append("✓" if f.staged else "")
        table.add_row(*row)

    console.print(table)
    viewed = sum(1 for f in response.files if f.viewed)
    console.print(f"[dim]{viewed}/{len(response.files)} file(s) viewed.[/dim]")
