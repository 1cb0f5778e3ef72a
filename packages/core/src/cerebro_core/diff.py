"""Diff resolution: adapter output joined with review state.

Viewed flags are read at the coordinate HEAD sits on right now (current
branch + current commit), never at a coordinate implied by the diff itself:
"viewed" means "reviewed as of where I am".
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from cerebro_core.errors import NotFoundError, ValidationError
from cerebro_core.models import MODE_BRANCH, MODE_STAGED, DiffResponse, FileDiff, validate_mode
from cerebro_store.models import CommitRef, RealCommit, StagedTree, WorkingTree

if TYPE_CHECKING:
    from cerebro_core.git import AdapterCache, GitRepository
    from cerebro_store.base import BaseStore
    from cerebro_store.models import Repository

logger = logging.getLogger(__name__)


def commit_coordinate(adapter: GitRepository, mode: str) -> CommitRef:
    """Return the commit coordinate review state is keyed by.

    A real HEAD hash whenever one exists; before the first commit there is
    none, and the mode's sentinel stands in.
    """
    head = adapter.get_current_commit()
    if head:
        return RealCommit(head)
    return StagedTree() if mode == MODE_STAGED else WorkingTree()


class DiffResolver:
    """Builds DiffResponse / FileDiff results for transports."""

    def __init__(self, store: BaseStore, adapters: AdapterCache):
        self._store = store
        self._adapters = adapters

    def _viewed_paths(self, repo: Repository, adapter: GitRepository, mode: str) -> tuple[str, CommitRef, set[str]]:
        branch = adapter.get_current_branch()
        coordinate = commit_coordinate(adapter, mode)
        return branch, coordinate, self._store.get_viewed_files(repo.id, branch, coordinate)

    def get_diff(self, repo: Repository, mode: str = MODE_BRANCH, compare_branch: str | None = None) -> DiffResponse:
        validate_mode(mode)
        adapter = self._adapters.get(repo.path)
        base_branch = compare_branch or repo.base_branch

        files = adapter.get_diff(base_branch, mode)
        branch, coordinate, viewed = self._viewed_paths(repo, adapter, mode)
        logger.debug("%s diff for %s: %d file(s), %d viewed", mode, repo.name, len(files), len(viewed))

        return DiffResponse(
            files=[f.with_viewed(f.path in viewed) for f in files],
            branch=branch,
            commit=str(coordinate),
            repo_path=repo.path,
            remote_url=adapter.get_remote_url(),
            mode=mode,
            base_branch=base_branch,
        )

    def get_file_diff(
        self,
        repo: Repository,
        file_path: str,
        mode: str = MODE_BRANCH,
        compare_branch: str | None = None,
    ) -> FileDiff:
        """Load one file's patch and snapshots for lazy expansion."""
        validate_mode(mode)
        adapter = self._adapters.get(repo.path)
        file_diff = adapter.get_file_diff(compare_branch or repo.base_branch, mode, file_path)
        if file_diff is None:
            raise NotFoundError(f"{file_path} has no changes in {mode} mode.")
        _, _, viewed = self._viewed_paths(repo, adapter, mode)
        return file_diff.with_viewed(file_diff.path in viewed)

    def set_file_viewed(self, repo: Repository, file_path: str, viewed: bool, mode: str = MODE_BRANCH) -> CommitRef:
        """Mark or unmark a file at the current coordinate; returns that coordinate."""
        validate_mode(mode)
        if not file_path:
            raise ValidationError("File path is required.")
        adapter = self._adapters.get(repo.path)
        coordinate = commit_coordinate(adapter, mode)
        self._store.set_file_viewed(repo.id, adapter.get_current_branch(), coordinate, file_path, viewed)
        return coordinate
