"""Comment and note operations at the transport boundary.

The store persists whatever it is handed; this layer fills in the current
branch/commit, validates requests, and turns the store's "not found" False
returns into NotFoundError for transports that want exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cerebro_core.diff import commit_coordinate
from cerebro_core.errors import NotFoundError, ValidationError
from cerebro_core.models import MODE_WORKING
from cerebro_core.threads import CommentThread, build_comment_threads, threads_by_file
from cerebro_store.models import NOTE_TYPES

if TYPE_CHECKING:
    from cerebro_core.git import AdapterCache
    from cerebro_store.base import BaseStore
    from cerebro_store.models import Comment, Note, Repository


def _check_line(line_number: int | None, required: bool = False) -> None:
    if line_number is None:
        if required:
            raise ValidationError("Line number is required.")
        return
    if isinstance(line_number, bool) or not isinstance(line_number, int) or line_number < 1:
        raise ValidationError(f"Line number must be a positive integer, got {line_number!r}.")


def _check_text(value: str | None, what: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{what} is required.")


class ReviewService:
    def __init__(self, store: BaseStore, adapters: AdapterCache):
        self._store = store
        self._adapters = adapters

    def _head(self, repo: Repository) -> tuple[str, str]:
        if self._store.get_repo(repo.id) is None:
            raise NotFoundError(f"Repository not found: {repo.id}")
        adapter = self._adapters.get(repo.path)
        return adapter.get_current_branch(), str(commit_coordinate(adapter, MODE_WORKING))

    def current_branch(self, repo: Repository) -> str:
        return self._adapters.get(repo.path).get_current_branch()

    # --- comments ---------------------------------------------------------

    def add_comment(
        self,
        repo: Repository,
        file_path: str,
        text: str,
        line_number: int | None = None,
        parent_id: str | None = None,
    ) -> Comment:
        _check_text(file_path, "File path")
        _check_text(text, "Comment text")
        _check_line(line_number)
        if parent_id is not None:
            parent = self._store.get_comment(parent_id)
            if parent is None or parent.repo_id != repo.id:
                raise ValidationError(f"Parent comment {parent_id} does not exist in {repo.name}.")
        branch, commit = self._head(repo)
        return self._store.add_comment(
            repo.id,
            file_path=file_path,
            text=text,
            branch=branch,
            commit=commit,
            line_number=line_number,
            parent_id=parent_id,
        )

    def reply(self, repo: Repository, parent_id: str, text: str) -> Comment:
        """Reply to a comment; the reply sits on the parent's file and line."""
        parent = self._store.get_comment(parent_id)
        if parent is None or parent.repo_id != repo.id:
            raise NotFoundError(f"Comment not found: {parent_id}")
        return self.add_comment(repo, parent.file_path, text, line_number=parent.line_number, parent_id=parent.id)

    def resolve_comment(self, repo: Repository, comment_id: str, resolved_by: str = "user") -> None:
        if not self._store.resolve_comment(comment_id, resolved_by or "user", repo_id=repo.id):
            raise NotFoundError(f"Comment not found: {comment_id}")

    def list_comments(self, repo: Repository, branch: str | None = None, active_only: bool = False) -> list[Comment]:
        """Comments for ``repo``.

        ``active_only`` is shorthand for "unresolved on the checked-out branch";
        otherwise the store's filtering contract applies unchanged.
        """
        if active_only and branch is None:
            branch = self.current_branch(repo)
        return self._store.get_comments(repo.id, branch)

    def comment_threads(
        self,
        repo: Repository,
        file_path: str | None = None,
        branch: str | None = None,
        active_only: bool = False,
    ) -> dict[str, list[CommentThread]]:
        comments = self.list_comments(repo, branch=branch, active_only=active_only)
        if file_path is not None:
            return {file_path: build_comment_threads(c for c in comments if c.file_path == file_path)}
        return threads_by_file(comments)

    # --- notes ------------------------------------------------------------

    def add_note(
        self,
        repo: Repository,
        file_path: str,
        line_number: int,
        text: str,
        author: str,
        type: str,
        metadata: dict[str, str] | None = None,
    ) -> Note:
        _check_text(file_path, "File path")
        _check_text(text, "Note text")
        _check_text(author, "Author")
        _check_line(line_number, required=True)
        if type not in NOTE_TYPES:
            raise ValidationError(f"Note type must be one of {', '.join(NOTE_TYPES)}, got {type!r}.")
        if metadata is not None and not all(isinstance(k, str) and isinstance(v, str) for k, v in metadata.items()):
            raise ValidationError("Note metadata must map strings to strings.")
        branch, commit = self._head(repo)
        return self._store.add_note(
            repo.id,
            file_path=file_path,
            line_number=line_number,
            text=text,
            branch=branch,
            commit=commit,
            author=author,
            type=type,
            metadata=metadata,
        )

    def dismiss_note(self, repo: Repository, note_id: str, dismissed_by: str = "user") -> None:
        if not self._store.dismiss_note(note_id, dismissed_by or "user", repo_id=repo.id):
            raise NotFoundError(f"Note not found: {note_id}")

    def list_notes(self, repo: Repository, branch: str | None = None, active_only: bool = False) -> list[Note]:
        if active_only and branch is None:
            branch = self.current_branch(repo)
        return self._store.get_notes(repo.id, branch)
