"""CLI entry point for cerebro.

Commands:
  repo      — track, list, remove and select repositories
  config    — show and change settings
  diff      — branch / working / staged diffs with viewed state
  viewed    — mark files reviewed at the current commit
  stage, unstage, discard, commit — index and working tree operations
  comments  — review comments and their reply threads
  notes     — agent-authored notes
  github    — pull-request comments for the checked-out branch
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from cerebro_cli.commands.changes import commit_cmd, discard_cmd, stage_cmd, unstage_cmd, viewed_group
from cerebro_cli.commands.comments import comments_group
from cerebro_cli.commands.config import config_group
from cerebro_cli.commands.diff import diff_cmd
from cerebro_cli.commands.gh import github_group
from cerebro_cli.commands.notes import notes_group
from cerebro_cli.commands.repo import repo_group


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("cerebro"),
    prog_name="cerebro",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to the configuration file. Defaults to config.yml in the config directory.",
    envvar="CEREBRO_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log git invocations and store activity.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """Review local git changes with viewed-file tracking, comments and notes."""
    from cerebro_cli.app import build_app
    from cerebro_core.config import load_config
    from cerebro_store.errors import StorageError

    _configure_logging(verbose)

    config = load_config(config_path)
    try:
        app = build_app(config, config_path=config_path)
    except StorageError as e:
        raise click.ClickException(str(e))
    ctx.obj = app
    ctx.call_on_close(app.close)


main.add_command(repo_group)
main.add_command(config_group)
main.add_command(diff_cmd)
main.add_command(viewed_group)
main.add_command(stage_cmd)
main.add_command(unstage_cmd)
main.add_command(discard_cmd)
main.add_command(commit_cmd)
main.add_command(comments_group)
main.add_command(notes_group)
main.add_command(github_group)
