"""Abstract review-state store interface.

The core and the CLI depend on BaseStore, not on a concrete backend, so a
test can build an isolated store per case and a deployment can swap the
backend without touching diff computation.

Failure policy shared by every backend:
- read paths degrade to safe empties (empty set/list, None) and log;
- write paths raise StorageError, never swallow;
- "not found" on resolve/dismiss/remove/set-current is a False return,
  not an exception, so the caller decides how to surface it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cerebro_store.models import Comment, CommitRef, Note, Repository, ReposState


class BaseStore(ABC):
    """Durable, scoped storage for repositories, viewed marks, comments and notes."""

    # --- repositories -----------------------------------------------------

    @abstractmethod
    def list_repos(self) -> list[Repository]:
        """Return all tracked repositories, most recently added first."""

    @abstractmethod
    def get_repo(self, repo_id: str) -> Repository | None:
        """Return the repository with this id, or None."""

    @abstractmethod
    def get_repo_by_path(self, path: str) -> Repository | None:
        """Return the repository tracked at this absolute path, or None."""

    @abstractmethod
    def add_repo(self, path: str, name: str, base_branch: str = "main") -> Repository:
        """Track a repository.

        Re-adding an already tracked path returns the existing record unchanged.
        The first repository ever added becomes current.
        """

    @abstractmethod
    def remove_repo(self, repo_id: str) -> bool:
        """Forget a repository and every viewed mark, comment and note scoped to it."""

    @abstractmethod
    def update_repo(self, repo_id: str, base_branch: str | None = None, name: str | None = None) -> bool:
        """Change a repository's base branch and/or display name."""

    @abstractmethod
    def get_current_repo_id(self) -> str | None:
        """Return the explicitly selected repository id, if any."""

    @abstractmethod
    def set_current_repo(self, repo_id: str | None) -> bool:
        """Select a repository (None clears the selection). False if the id is unknown."""

    def get_current_repo(self) -> Repository | None:
        """Return the selected repository, else the most recently added one."""
        repo_id = self.get_current_repo_id()
        if repo_id:
            repo = self.get_repo(repo_id)
            if repo is not None:
                return repo
        repos = self.list_repos()
        return repos[0] if repos else None

    def get_repos_state(self) -> ReposState:
        from cerebro_store.models import ReposState

        return ReposState(repos=self.list_repos(), current_repo=self.get_current_repo_id())

    # --- viewed marks -----------------------------------------------------

    @abstractmethod
    def get_viewed_files(self, repo_id: str, branch: str, commit: CommitRef) -> set[str]:
        """Return the paths marked viewed at this coordinate. Absence means unviewed."""

    @abstractmethod
    def set_file_viewed(self, repo_id: str, branch: str, commit: CommitRef, file_path: str, viewed: bool) -> None:
        """Upsert the mark when ``viewed`` is True, delete it when False."""

    # --- comments ---------------------------------------------------------

    @abstractmethod
    def get_comments(self, repo_id: str, branch: str | None = None) -> list[Comment]:
        """Return comments for a repository, newest first.

        With ``branch`` only unresolved comments on that branch are returned;
        without it the full history, resolved included.
        """

    @abstractmethod
    def add_comment(
        self,
        repo_id: str,
        file_path: str,
        text: str,
        branch: str,
        commit: str,
        line_number: int | None = None,
        parent_id: str | None = None,
    ) -> Comment:
        """Persist a new unresolved comment and return it with its id and timestamp."""

    @abstractmethod
    def get_comment(self, comment_id: str) -> Comment | None:
        """Return a single comment by id, or None."""

    @abstractmethod
    def resolve_comment(self, comment_id: str, resolved_by: str = "user", repo_id: str | None = None) -> bool:
        """Mark a comment resolved. Returns False if no such comment exists."""

    # --- notes ------------------------------------------------------------

    @abstractmethod
    def get_notes(self, repo_id: str, branch: str | None = None) -> list[Note]:
        """Same filtering contract as get_comments, with dismissed in place of resolved."""

    @abstractmethod
    def add_note(
        self,
        repo_id: str,
        file_path: str,
        line_number: int,
        text: str,
        branch: str,
        commit: str,
        author: str,
        type: str,
        metadata: dict[str, str] | None = None,
    ) -> Note:
        """Persist a new, not dismissed note."""

    @abstractmethod
    def dismiss_note(self, note_id: str, dismissed_by: str = "user", repo_id: str | None = None) -> bool:
        """Mark a note dismissed. Returns False if no such note exists."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
