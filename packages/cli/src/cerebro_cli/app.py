"""Composition root shared by every command.

Builds the store, adapter cache, registry, resolver and review service once
per invocation and hands them to commands through the click context, so no
command reaches for module-level state.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass

import click

from cerebro_core.diff import DiffResolver
from cerebro_core.errors import CerebroError, InvalidReferenceError, StorageError, ValidationError
from cerebro_core.git import AdapterCache
from cerebro_core.registry import RepositoryRegistry
from cerebro_core.review import ReviewService
from cerebro_store.base import BaseStore


@dataclass
class AppContext:
    config: dict
    config_path: str | None
    store: BaseStore
    adapters: AdapterCache
    registry: RepositoryRegistry
    resolver: DiffResolver
    reviews: ReviewService

    def close(self) -> None:
        self.store.close()


def build_app(config: dict, config_path: str | None = None, store: BaseStore | None = None) -> AppContext:
    """Wire the core together. ``store`` defaults to SQLite at ``config['store_path']``."""
    if store is None:
        from cerebro_store.sqlite import SQLiteStore

        store = SQLiteStore(db_path=config["store_path"])
    adapters = AdapterCache()
    return AppContext(
        config=config,
        config_path=config_path,
        store=store,
        adapters=adapters,
        registry=RepositoryRegistry(store, adapters),
        resolver=DiffResolver(store, adapters),
        reviews=ReviewService(store, adapters),
    )


pass_app = click.make_pass_decorator(AppContext)


def handle_errors(func):
    """Translate core errors into click exceptions with readable messages."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InvalidReferenceError as e:
            hint = f"\nRe-run with --base {e.default_branch} to compare against the default branch." if e.default_branch else ""
            raise click.ClickException(f"{e}{hint}")
        except ValidationError as e:
            raise click.UsageError(str(e))
        except (CerebroError, StorageError) as e:
            raise click.ClickException(str(e))

    return wrapper


def repo_option(func):
    return click.option(
        "--repo",
        "repo_ref",
        default=None,
        help="Repository id or path. Defaults to the tracked repository containing the "
        "current directory, then the current repository.",
    )(func)
