"""Diff records handed to transports.

``to_dict()`` on each record produces the exact wire shape external layers
preserve; optional fields are omitted rather than sent as null.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from cerebro_core.errors import ValidationError

MODE_BRANCH = "branch"
MODE_WORKING = "working"
MODE_STAGED = "staged"
DIFF_MODES = (MODE_BRANCH, MODE_WORKING, MODE_STAGED)


def validate_mode(mode: str) -> str:
    if mode not in DIFF_MODES:
        raise ValidationError(f"Unknown diff mode {mode!r}. Choose one of: {', '.join(DIFF_MODES)}.")
    return mode


@dataclass
class FileContents:
    """One side of a file diff: the basename and the full text."""

    name: str
    contents: str

    def to_dict(self) -> dict:
        return {"name": self.name, "contents": self.contents}


@dataclass
class FileDiff:
    """A single changed file.

    ``patch == ""`` means the patch has not been loaded yet (branch mode lists
    files from stat output only). ``viewed`` is joined in by the resolver and
    never stored with the record.
    """

    path: str
    status: str  # "added" | "modified" | "deleted" | "renamed" | "untracked"
    additions: int = 0
    deletions: int = 0
    patch: str = ""
    viewed: bool = False
    old_file: FileContents | None = None
    new_file: FileContents | None = None
    staged: bool | None = None

    def with_viewed(self, viewed: bool) -> FileDiff:
        return replace(self, viewed=viewed)

    def to_dict(self) -> dict:
        data: dict = {
            "path": self.path,
            "status": self.status,
            "additions": self.additions,
            "deletions": self.deletions,
            "patch": self.patch,
            "viewed": self.viewed,
        }
        if self.old_file is not None:
            data["old_file"] = self.old_file.to_dict()
        if self.new_file is not None:
            data["new_file"] = self.new_file.to_dict()
        if self.staged is not None:
            data["staged"] = self.staged
        return data


@dataclass
class DiffResponse:
    """Everything a viewer needs to render one diff request."""

    branch: str
    commit: str
    repo_path: str
    mode: str
    base_branch: str
    files: list[FileDiff] = field(default_factory=list)
    remote_url: str | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "files": [f.to_dict() for f in self.files],
            "branch": self.branch,
            "commit": self.commit,
            "repo_path": self.repo_path,
        }
        if self.remote_url is not None:
            data["remote_url"] = self.remote_url
        data["mode"] = self.mode
        data["base_branch"] = self.base_branch
        return data
