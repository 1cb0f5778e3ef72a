"""comments commands — review comments and their reply threads."""

from __future__ import annotations

import json
from datetime import datetime

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from cerebro_cli.app import handle_errors, pass_app, repo_option

console = Console()


def _when(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M")


def _location(comment) -> str:
    if comment.line_number is None:
        return escape(comment.file_path)
    return f"{escape(comment.file_path)}:{comment.line_number}"


def _label(comment) -> str:
    label = f"[dim]{comment.id[:8]}[/dim] {escape(comment.text)}"
    if comment.resolved:
        label += f" [green](resolved by {escape(comment.resolved_by or 'user')})[/green]"
    return label


def _add_replies(node: Tree, thread) -> None:
    for reply in thread.replies:
        _add_replies(node.add(_label(reply.comment)), reply)


@click.group("comments")
def comments_group():
    """Review comments on files and lines."""


@comments_group.command("list")
@repo_option
@click.option("--branch", default=None, help="Only unresolved comments on this branch.")
@click.option("--active", is_flag=True, help="Only unresolved comments on the checked-out branch.")
@click.option("--threads", "as_threads", is_flag=True, help="Group replies under their parent comment.")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@pass_app
@handle_errors
def list_cmd(app, repo_ref: str | None, branch: str | None, active: bool, as_threads: bool, as_json: bool):
    """List comments. Without --branch or --active every comment is shown, resolved included."""
    repo = app.registry.resolve(repo_ref)

    if as_threads:
        by_file = app.reviews.comment_threads(repo, branch=branch, active_only=active)
        if as_json:
            payload = {path: [t.to_dict() for t in threads] for path, threads in by_file.items()}
            click.echo(json.dumps(payload, indent=2))
            return
        if not by_file:
            console.print("[yellow]No comments.[/yellow]")
            return
        for path, threads in by_file.items():
            tree = Tree(f"[bold]{escape(path)}[/bold]")
            for thread in threads:
                root = thread.comment
                line = f"L{root.line_number} " if root.line_number is not None else ""
                _add_replies(tree.add(f"{line}{_label(root)}"), thread)
            console.print(tree)
        return

    comments = app.reviews.list_comments(repo, branch=branch, active_only=active)
    if as_json:
        click.echo(json.dumps([c.to_dict() for c in comments], indent=2))
        return
    if not comments:
        console.print("[yellow]No comments.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", width=8)
    table.add_column("Location", overflow="fold")
    table.add_column("Comment", overflow="fold")
    table.add_column("Branch")
    table.add_column("When", width=16)
    table.add_column("Resolved", width=8)
    for c in comments:
        table.add_row(
            c.id[:8],
            _location(c),
            escape(c.text),
            escape(c.branch),
            _when(c.timestamp),
            "✓" if c.resolved else "",
        )
    console.print(table)


@comments_group.command("add")
@click.argument("file_path")
@click.argument("text")
@click.option("--line", "line_number", type=int, default=None, help="Line the comment refers to.")
@click.option("--reply-to", "parent_id", default=None, help="Id of the comment this one answers.")
@repo_option
@pass_app
@handle_errors
def add_cmd(app, file_path: str, text: str, line_number: int | None, parent_id: str | None, repo_ref: str | None):
    """Comment on FILE_PATH at the current branch and commit."""
    repo = app.registry.resolve(repo_ref)
    comment = app.reviews.add_comment(repo, file_path, text, line_number=line_number, parent_id=parent_id)
    console.print(f"Added comment {comment.id} on {_location(comment)}")


@comments_group.command("reply")
@click.argument("comment_id")
@click.argument("text")
@repo_option
@pass_app
@handle_errors
def reply_cmd(app, comment_id: str, text: str, repo_ref: str | None):
    """Reply to COMMENT_ID."""
    repo = app.registry.resolve(repo_ref)
    reply = app.reviews.reply(repo, comment_id, text)
    console.print(f"Added reply {reply.id} to {comment_id}")


@comments_group.command("resolve")
@click.argument("comment_id")
@click.option("--by", "resolved_by", default="user", show_default=True, help="Who resolved the comment.")
@repo_option
@pass_app
@handle_errors
def resolve_cmd(app, comment_id: str, resolved_by: str, repo_ref: str | None):
    """Mark COMMENT_ID resolved. Resolving twice keeps the first resolver."""
    repo = app.registry.resolve(repo_ref)
    app.reviews.resolve_comment(repo, comment_id, resolved_by=resolved_by)
    console.print(f"Resolved comment {comment_id}")
