"""Repository registry: which repository a request is about.

Entries whose directory is gone, or no longer a git work tree, are pruned
when they are next listed or resolved, instead of failing the whole listing.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from cerebro_core.errors import GitCommandError, NotFoundError, ValidationError
from cerebro_core.git import is_git_repo, repo_name, repo_root

if TYPE_CHECKING:
    from cerebro_core.git import AdapterCache
    from cerebro_store.base import BaseStore
    from cerebro_store.models import Repository

logger = logging.getLogger(__name__)


class RepositoryRegistry:
    def __init__(
        self,
        store: BaseStore,
        adapters: AdapterCache,
        is_repo: Callable[[str], bool] = is_git_repo,
    ):
        self._store = store
        self._adapters = adapters
        self._is_repo = is_repo

    def _healthy(self, repo: Repository) -> bool:
        """Return False (after pruning the entry) if ``repo`` no longer exists on disk.

        An entry whose check cannot run (git missing from PATH) is kept.
        """
        try:
            if self._is_repo(repo.path):
                return True
        except GitCommandError as e:
            logger.warning("Could not check repository %s (%s), keeping it: %s", repo.name, repo.path, e)
            return True
        logger.info("Pruning stale repository %s (%s): not a git work tree", repo.name, repo.path)
        self._store.remove_repo(repo.id)
        self._adapters.invalidate(repo.path)
        return False

    def list_repos(self) -> list[Repository]:
        return [repo for repo in self._store.list_repos() if self._healthy(repo)]

    def add(self, path: str, base_branch: str | None = None, name: str | None = None) -> Repository:
        """Track the work tree containing ``path``.

        The stored path is the work tree's top level. An already tracked path
        returns the existing record unchanged.
        """
        root = repo_root(os.path.abspath(os.path.expanduser(path)))
        if root is None:
            raise ValidationError(f"{path} is not a git repository.")
        existing = self._store.get_repo_by_path(root)
        if existing is not None:
            return existing
        if base_branch is None:
            base_branch = self._adapters.get(root).get_default_branch()
        return self._store.add_repo(root, name or repo_name(root), base_branch)

    def remove(self, repo_id: str) -> None:
        repo = self._store.get_repo(repo_id)
        if repo is None or not self._store.remove_repo(repo_id):
            raise NotFoundError(f"Repository not found: {repo_id}")
        self._adapters.invalidate(repo.path)

    def set_current(self, repo_id: str) -> Repository:
        if not self._store.set_current_repo(repo_id):
            raise NotFoundError(f"Repository not found: {repo_id}")
        return self._store.get_repo(repo_id)

    def resolve(self, identifier: str | None = None, cwd: str | None = None) -> Repository:
        """Find the repository a request targets.

        With an identifier: exact id match, then absolute-path match; no
        further fallback. Without one: the tracked repository containing the
        working directory (innermost wins), then the current repository.
        """
        if identifier:
            repo = self._store.get_repo(identifier)
            if repo is None:
                repo = self._store.get_repo_by_path(str(Path(identifier).expanduser().resolve()))
            if repo is not None and self._healthy(repo):
                return repo
            raise NotFoundError(f"Repository not found for id or path: {identifier}")

        repo = self._containing(Path(cwd or os.getcwd()).resolve())
        if repo is not None:
            return repo

        while True:
            current = self._store.get_current_repo()
            if current is None:
                break
            if self._healthy(current):
                return current

        raise NotFoundError("No repository found. Use 'cerebro repo add <path>' first or pass --repo.")

    def _containing(self, cwd: Path) -> Repository | None:
        best: Repository | None = None
        for repo in self._store.list_repos():
            repo_path = Path(repo.path)
            if cwd != repo_path and repo_path not in cwd.parents:
                continue
            if best is None or len(repo.path) > len(best.path):
                best = repo
        if best is not None and not self._healthy(best):
            return self._containing(cwd)
        return best
