"""github commands — pull-request comments for the checked-out branch."""

from __future__ import annotations

import json

import click
from github import GithubException
from rich.console import Console
from rich.markup import escape

from cerebro_cli.app import handle_errors, pass_app, repo_option
from cerebro_cli.auth import resolve_github_token

console = Console()


@click.group("github")
def github_group():
    """Read pull-request discussion from GitHub."""


@github_group.command("comments")
@repo_option
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@pass_app
@handle_errors
def comments_cmd(app, repo_ref: str | None, as_json: bool):
    """Show review and issue comments on the PR for the current branch."""
    from cerebro_core.gh.pull_request import fetch_github_comments_for_branch

    repo = app.registry.resolve(repo_ref)
    adapter = app.adapters.get(repo.path)
    remote_url = adapter.get_remote_url()
    branch = adapter.get_current_branch()

    try:
        result = fetch_github_comments_for_branch(remote_url, branch, token=resolve_github_token(app.config))
    except GithubException as e:
        raise click.ClickException(f"GitHub request failed ({e.status}): {e.data}")

    if as_json:
        click.echo(
            json.dumps(
                {"pr_number": result.pr_number, "comments": [c.to_dict() for c in result.comments]},
                indent=2,
            )
        )
        return

    if result.repo is None:
        console.print("[yellow]The origin remote is not a GitHub repository.[/yellow]")
        return
    if result.pr_number is None:
        console.print(f"[yellow]No pull request found for branch {escape(branch)}.[/yellow]")
        return

    console.print(f"[bold]{escape(result.repo.full_name)}#{result.pr_number}[/bold] ({len(result.comments)} comment(s))\n")
    for c in result.comments:
        where = ""
        if c.path:
            where = f" on {escape(c.path)}" + (f":{c.line}" if c.line else "")
        console.print(f"[cyan]{escape(c.user)}[/cyan]{where} [dim]{c.created_at} ({c.type})[/dim]")
        console.print(escape(c.body))
        console.print()
