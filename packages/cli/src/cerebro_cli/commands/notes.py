"""notes commands — line-anchored notes left by agents or people."""

from __future__ import annotations

import json

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cerebro_cli.app import handle_errors, pass_app, repo_option
from cerebro_store.models import NOTE_TYPES

console = Console()

_TYPE_STYLE = {"explanation": "blue", "rationale": "magenta", "suggestion": "yellow"}


def _parse_metadata(pairs: tuple[str, ...]) -> dict[str, str] | None:
    if not pairs:
        return None
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"{pair!r} is not in key=value form.", param_hint="--meta")
        metadata[key] = value
    return metadata


@click.group("notes")
def notes_group():
    """Notes attached to file lines."""


@notes_group.command("list")
@repo_option
@click.option("--branch", default=None, help="Only active notes on this branch.")
@click.option("--active", is_flag=True, help="Only active notes on the checked-out branch.")
@click.option("--json", "as_json", is_flag=True, help="Print machine-readable JSON.")
@pass_app
@handle_errors
def list_cmd(app, repo_ref: str | None, branch: str | None, active: bool, as_json: bool):
    """List notes. Without --branch or --active every note is shown, dismissed included."""
    repo = app.registry.resolve(repo_ref)
    notes = app.reviews.list_notes(repo, branch=branch, active_only=active)
    if as_json:
        click.echo(json.dumps([n.to_dict() for n in notes], indent=2))
        return
    if not notes:
        console.print("[yellow]No notes.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("ID", width=8)
    table.add_column("Location", overflow="fold")
    table.add_column("Type", width=11)
    table.add_column("Note", overflow="fold")
    table.add_column("Author")
    table.add_column("Dismissed", width=9)
    for n in notes:
        style = _TYPE_STYLE.get(n.type, "white")
        table.add_row(
            n.id[:8],
            f"{escape(n.file_path)}:{n.line_number}",
            f"[{style}]{n.type}[/{style}]",
            escape(n.text),
            escape(n.author),
            "✓" if n.dismissed else "",
        )
    console.print(table)


@notes_group.command("add")
@click.argument("file_path")
@click.argument("line_number", type=int)
@click.argument("text")
@click.option("--author", required=True, help="Who wrote the note, e.g. an agent name.")
@click.option("--type", "note_type", type=click.Choice(NOTE_TYPES), default="explanation", show_default=True)
@click.option("--meta", "meta", multiple=True, metavar="KEY=VALUE", help="Extra metadata. Repeatable.")
@repo_option
@pass_app
@handle_errors
def add_cmd(app, file_path: str, line_number: int, text: str, author: str, note_type: str, meta, repo_ref: str | None):
    """Attach a note to FILE_PATH at LINE_NUMBER."""
    repo = app.registry.resolve(repo_ref)
    note = app.reviews.add_note(
        repo,
        file_path,
        line_number,
        text,
        author=author,
        type=note_type,
        metadata=_parse_metadata(meta),
    )
    console.print(f"Added {note.type} note {note.id} on {escape(file_path)}:{line_number}")


@notes_group.command("dismiss")
@click.argument("note_id")
@click.option("--by", "dismissed_by", default="user", show_default=True, help="Who dismissed the note.")
@repo_option
@pass_app
@handle_errors
def dismiss_cmd(app, note_id: str, dismissed_by: str, repo_ref: str | None):
    """Dismiss NOTE_ID."""
    repo = app.registry.resolve(repo_ref)
    app.reviews.dismiss_note(repo, note_id, dismissed_by=dismissed_by)
    console.print(f"Dismissed note {note_id}")
