"""Review-state data models.

Decoupled from cerebro_core so the store layer can be used independently:
the core computes diffs, the store only knows about repositories, viewed
marks, comments and notes.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Union

WORKING_SENTINEL = "working"
STAGED_SENTINEL = "staged"

NOTE_TYPES = ("explanation", "rationale", "suggestion")

_HEX_RE = re.compile(r"^[0-9a-f]{4,40}$")


def now_ms() -> int:
    """Current wall-clock time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RealCommit:
    """A commit hash (short or full) that exists in the repository."""

    hash: str

    def __post_init__(self):
        normalized = self.hash.strip().lower()
        if not _HEX_RE.match(normalized):
            raise ValueError(f"Not a commit hash: {self.hash!r}")
        object.__setattr__(self, "hash", normalized)

    def __str__(self) -> str:
        return self.hash


@dataclass(frozen=True)
class WorkingTree:
    """Stands in for a commit when there is no real commit to key working-tree state by."""

    def __str__(self) -> str:
        return WORKING_SENTINEL


@dataclass(frozen=True)
class StagedTree:
    """Stands in for a commit when there is no real commit to key index state by."""

    def __str__(self) -> str:
        return STAGED_SENTINEL


CommitRef = Union[RealCommit, WorkingTree, StagedTree]


@dataclass
class Repository:
    """A tracked repository. ``path`` is absolute and unique across the registry."""

    id: str
    path: str
    name: str
    base_branch: str
    added_at: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "path": self.path,
            "name": self.name,
            "baseBranch": self.base_branch,
            "addedAt": self.added_at,
        }


@dataclass
class Comment:
    """A review comment on a file, optionally on a line and optionally a reply.

    Resolution is one-way: once ``resolved`` is True it stays True and
    ``resolved_by``/``resolved_at`` keep their first values.
    """

    id: str
    repo_id: str
    file_path: str
    text: str
    branch: str
    commit: str
    timestamp: int
    line_number: int | None = None
    parent_id: str | None = None
    resolved: bool = False
    resolved_by: str | None = None
    resolved_at: int | None = None

    def to_dict(self) -> dict:
        data: dict = {"id": self.id, "file_path": self.file_path}
        if self.line_number is not None:
            data["line_number"] = self.line_number
        data["text"] = self.text
        if self.parent_id is not None:
            data["parent_id"] = self.parent_id
        data.update(
            timestamp=self.timestamp,
            branch=self.branch,
            commit=self.commit,
            resolved=self.resolved,
        )
        if self.resolved_by is not None:
            data["resolved_by"] = self.resolved_by
        if self.resolved_at is not None:
            data["resolved_at"] = self.resolved_at
        return data


@dataclass
class Note:
    """An agent- or user-authored note attached to a file line."""

    id: str
    repo_id: str
    file_path: str
    line_number: int
    text: str
    branch: str
    commit: str
    author: str
    type: str  # "explanation" | "rationale" | "suggestion"
    timestamp: int
    metadata: dict[str, str] | None = None
    dismissed: bool = False
    dismissed_by: str | None = None
    dismissed_at: int | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "id": self.id,
            "file_path": self.file_path,
            "line_number": self.line_number,
            "text": self.text,
            "timestamp": self.timestamp,
            "branch": self.branch,
            "commit": self.commit,
            "author": self.author,
            "type": self.type,
        }
        if self.metadata is not None:
            data["metadata"] = dict(self.metadata)
        data["dismissed"] = self.dismissed
        if self.dismissed_by is not None:
            data["dismissed_by"] = self.dismissed_by
        if self.dismissed_at is not None:
            data["dismissed_at"] = self.dismissed_at
        return data


@dataclass
class ReposState:
    """All tracked repositories plus the id of the current one, if any."""

    repos: list[Repository] = field(default_factory=list)
    current_repo: str | None = None
