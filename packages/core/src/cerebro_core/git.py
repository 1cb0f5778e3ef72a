"""Repository adapter: every git invocation the diff engine makes.

The adapter is a stateless wrapper around a repository path. All state
lives in git itself, so one instance per path can be shared freely. The
composition root owns the AdapterCache that memoizes them.

Mutating operations (stage/unstage/discard/commit) rely on git's own index
lock; no additional locking is layered on top.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path

from cerebro_core.errors import GitCommandError, InvalidReferenceError, ValidationError
from cerebro_core.models import MODE_BRANCH, MODE_STAGED, MODE_WORKING, FileContents, FileDiff, validate_mode
from cerebro_core.utils.patch import (
    GitStatus,
    NameStatus,
    count_changes,
    create_add_patch,
    create_binary_add_patch,
    create_delete_patch,
    parse_name_status,
    parse_numstat,
    parse_porcelain_status,
)

logger = logging.getLogger(__name__)

# Local branch names checked, in order, when the remote does not say which
# branch is the default.
DEFAULT_BRANCH_CANDIDATES = ("main", "master", "develop", "dev")

# Keep output independent of the user's colour and external diff settings.
_DIFF_FLAGS = ["--no-color", "--no-ext-diff"]


def _run_git(args: list[str], cwd: str) -> subprocess.CompletedProcess:
    cmd = ["git", "-c", "core.quotePath=false", *args]
    logger.debug("git %s (in %s)", " ".join(args), cwd)
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        # Either git is not installed or cwd vanished.
        raise GitCommandError(cmd, None, str(e)) from e


def is_git_repo(path: str) -> bool:
    """Return True if ``path`` is an existing directory inside a git work tree.

    False only when the directory is gone or git ran and said no; a git that
    cannot be started raises GitCommandError.
    """
    if not Path(path).is_dir():
        return False
    result = _run_git(["rev-parse", "--is-inside-work-tree"], cwd=str(path))
    return result.returncode == 0 and result.stdout.strip() == "true"


def repo_root(path: str) -> str | None:
    """Return the top-level directory of the work tree containing ``path``."""
    if not Path(path).is_dir():
        return None
    result = _run_git(["rev-parse", "--show-toplevel"], cwd=str(path))
    if result.returncode != 0:
        return None
    return str(Path(result.stdout.strip()).resolve())


def repo_name(path: str) -> str:
    return Path(path).name


def _is_binary(data: bytes | str) -> bool:
    return (b"\0" if isinstance(data, bytes) else "\0") in data


class GitRepository:
    """Git operations for a single repository, addressed by absolute path."""

    def __init__(self, repo_path: str):
        self.repo_path = str(Path(repo_path).resolve())

    def __repr__(self) -> str:
        return f"GitRepository({self.repo_path!r})"

    # ------------------------------------------------------------------
    # Invocation helpers
    # ------------------------------------------------------------------

    def _git(self, *args: str) -> str:
        """Run git and return stdout; non-zero exit raises GitCommandError."""
        result = _run_git(list(args), cwd=self.repo_path)
        if result.returncode != 0:
            raise GitCommandError(["git", *args], result.returncode, result.stderr)
        return result.stdout

    def _try_git(self, *args: str) -> str | None:
        """Run git for a best-effort lookup; non-zero exit returns None."""
        result = _run_git(list(args), cwd=self.repo_path)
        if result.returncode != 0:
            return None
        return result.stdout

    # ------------------------------------------------------------------
    # Repository facts
    # ------------------------------------------------------------------

    def get_current_branch(self) -> str:
        """Return the checked-out branch name, or ``HEAD`` when detached."""
        branch = self._try_git("symbolic-ref", "--quiet", "--short", "HEAD")
        return branch.strip() if branch else "HEAD"

    def get_current_commit(self) -> str | None:
        """Return the 7-character HEAD hash, or None before the first commit."""
        head = self._try_git("rev-parse", "--verify", "--quiet", "HEAD")
        return head.strip()[:7] if head else None

    def get_default_branch(self) -> str:
        remote_head = self._try_git("symbolic-ref", "--quiet", "--short", "refs/remotes/origin/HEAD")
        if remote_head and remote_head.strip():
            # "origin/main" -> "main"
            return remote_head.strip().split("/", 1)[-1]

        local = set(self.local_branches())
        for name in DEFAULT_BRANCH_CANDIDATES:
            if name in local:
                return name

        current = self.get_current_branch()
        return current if current != "HEAD" else "main"

    def local_branches(self) -> list[str]:
        output = self._try_git("for-each-ref", "--format=%(refname:short)", "refs/heads/")
        return [line.strip() for line in (output or "").splitlines() if line.strip()]

    def get_remote_url(self) -> str | None:
        """Return the origin fetch URL. A repository without a remote is not an error."""
        url = self._try_git("remote", "get-url", "origin")
        if url is None:
            return None
        return url.strip() or None

    def status(self) -> GitStatus:
        return parse_porcelain_status(self._git("status", "--porcelain=v1", "-z", "--untracked-files=all"))

    def ref_exists(self, ref: str) -> bool:
        return self._try_git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}") is not None

    # ------------------------------------------------------------------
    # Index / working tree mutations
    # ------------------------------------------------------------------

    def _checked_path(self, file_path: str) -> Path:
        if not file_path:
            raise ValidationError("File path is required.")
        full = (Path(self.repo_path) / file_path).resolve()
        try:
            full.relative_to(self.repo_path)
        except ValueError:
            raise ValidationError(f"Path {file_path!r} is outside the repository.")
        return full

    def stage_file(self, file_path: str) -> None:
        self._checked_path(file_path)
        self._git("add", "--", file_path)

    def unstage_file(self, file_path: str) -> None:
        self._checked_path(file_path)
        if self.get_current_commit() is None:
            # Nothing to reset to before the first commit.
            self._git("rm", "--cached", "--quiet", "--", file_path)
        else:
            self._git("reset", "--quiet", "HEAD", "--", file_path)

    def discard_file(self, file_path: str) -> None:
        """Throw away working-tree changes to one file.

        Untracked files are deleted from disk; tracked files are restored.
        """
        full = self._checked_path(file_path)
        if file_path in self.status().untracked:
            logger.info("Deleting untracked file %s", full)
            full.unlink()
        else:
            self._git("checkout", "--", file_path)

    def commit(self, message: str) -> str:
        """Commit the index and return the new short commit hash."""
        if not message or not message.strip():
            raise ValidationError("Commit message is required.")
        self._git("commit", "-m", message)
        return self.get_current_commit() or ""

    # ------------------------------------------------------------------
    # Diffs
    # ------------------------------------------------------------------

    def resolve_base(self, base_branch: str) -> str:
        """Return the comparison point for branch mode.

        Normally the merge-base of ``base_branch`` and HEAD. When no merge-base
        exists (unrelated histories, no commits yet) the ref itself is used.
        A ref that does not exist at all raises InvalidReferenceError carrying
        the detected default branch.
        """
        merge_base = self._try_git("merge-base", base_branch, "HEAD")
        if merge_base and merge_base.strip():
            return merge_base.strip()
        if self.ref_exists(base_branch):
            logger.warning("No merge-base between %s and HEAD; comparing against %s directly", base_branch, base_branch)
            return base_branch
        raise InvalidReferenceError(base_branch, self.get_default_branch())

    def get_diff(self, base_branch: str, mode: str = MODE_BRANCH) -> list[FileDiff]:
        validate_mode(mode)
        if mode == MODE_WORKING:
            return self._working_diff()
        if mode == MODE_STAGED:
            return self._staged_diff()
        return self._branch_diff(base_branch)

    def get_file_diff(self, base_branch: str, mode: str, file_path: str) -> FileDiff | None:
        """Return one file's full diff, or None if it has no change under ``mode``."""
        validate_mode(mode)
        if not file_path:
            raise ValidationError("File path is required.")
        if mode == MODE_WORKING:
            return self._working_file_diff(file_path, self.status())
        if mode == MODE_STAGED:
            entry = self._find_entry(self._git("diff", *_DIFF_FLAGS, "--cached", "--name-status"), file_path)
            return self._staged_file_diff(entry) if entry else None
        base = self.resolve_base(base_branch)
        entry = self._find_entry(self._git("diff", *_DIFF_FLAGS, base, "--name-status"), file_path)
        return self._branch_file_diff(base, entry) if entry else None

    @staticmethod
    def _find_entry(name_status: str, file_path: str) -> NameStatus | None:
        for entry in parse_name_status(name_status):
            if entry.path == file_path:
                return entry
        return None

    def _branch_diff(self, base_branch: str) -> list[FileDiff]:
        base = self.resolve_base(base_branch)
        # Two calls for the whole change set; patches load per file on demand.
        stats = parse_numstat(self._git("diff", *_DIFF_FLAGS, base, "--numstat"))
        files = []
        for entry in parse_name_status(self._git("diff", *_DIFF_FLAGS, base, "--name-status")):
            additions, deletions = stats.get(entry.path, (0, 0))
            files.append(FileDiff(path=entry.path, status=entry.status, additions=additions, deletions=deletions))
        return files

    def _branch_file_diff(self, base: str, entry: NameStatus) -> FileDiff:
        paths = [entry.old_path, entry.path] if entry.old_path else [entry.path]
        patch = self._git("diff", *_DIFF_FLAGS, base, "--", *paths)
        additions, deletions = count_changes(patch)
        old_path = entry.old_path or entry.path
        return FileDiff(
            path=entry.path,
            status=entry.status,
            additions=additions,
            deletions=deletions,
            patch=patch,
            old_file=self._show(base, old_path) if entry.status != "added" else None,
            new_file=self._working_contents(entry.path) if entry.status != "deleted" else None,
        )

    def _working_diff(self) -> list[FileDiff]:
        status = self.status()
        files = []
        for path in status.modified:
            files.append(self._modified_file_diff(path))
        for path in status.untracked:
            files.append(self._untracked_file_diff(path))
        for path in status.deleted:
            files.append(self._deleted_file_diff(path))
        if status.staged:
            staged_entries = parse_name_status(self._git("diff", *_DIFF_FLAGS, "--cached", "--name-status"))
            for entry in staged_entries:
                record = self._staged_file_diff(entry)
                record.staged = True
                files.append(record)
        return files

    def _working_file_diff(self, file_path: str, status: GitStatus) -> FileDiff | None:
        if file_path in status.modified:
            return self._modified_file_diff(file_path)
        if file_path in status.untracked:
            return self._untracked_file_diff(file_path)
        if file_path in status.deleted:
            return self._deleted_file_diff(file_path)
        if file_path in status.staged:
            entry = self._find_entry(self._git("diff", *_DIFF_FLAGS, "--cached", "--name-status"), file_path)
            if entry is not None:
                record = self._staged_file_diff(entry)
                record.staged = True
                return record
        return None

    def _modified_file_diff(self, file_path: str) -> FileDiff:
        patch = self._git("diff", *_DIFF_FLAGS, "--", file_path)
        additions, deletions = count_changes(patch)
        return FileDiff(
            path=file_path,
            status="modified",
            additions=additions,
            deletions=deletions,
            patch=patch,
            old_file=self._show("", file_path),
            new_file=self._working_contents(file_path),
            staged=False,
        )

    def _untracked_file_diff(self, file_path: str) -> FileDiff:
        try:
            data = (Path(self.repo_path) / file_path).read_bytes()
        except OSError as e:
            logger.warning("Cannot read untracked file %s: %s", file_path, e)
            data = b""
        if _is_binary(data):
            return FileDiff(
                path=file_path,
                status="untracked",
                patch=create_binary_add_patch(file_path),
                staged=False,
            )
        contents = data.decode("utf-8", errors="replace")
        patch = create_add_patch(file_path, contents)
        additions, deletions = count_changes(patch)
        return FileDiff(
            path=file_path,
            status="untracked",
            additions=additions,
            deletions=deletions,
            patch=patch,
            new_file=FileContents(name=Path(file_path).name, contents=contents),
            staged=False,
        )

    def _deleted_file_diff(self, file_path: str) -> FileDiff:
        old_file = self._show("", file_path)
        patch = create_delete_patch(file_path, old_file.contents if old_file else "")
        additions, deletions = count_changes(patch)
        return FileDiff(
            path=file_path,
            status="deleted",
            additions=additions,
            deletions=deletions,
            patch=patch,
            old_file=old_file,
            staged=False,
        )

    def _staged_diff(self) -> list[FileDiff]:
        entries = parse_name_status(self._git("diff", *_DIFF_FLAGS, "--cached", "--name-status"))
        return [self._staged_file_diff(entry) for entry in entries]

    def _staged_file_diff(self, entry: NameStatus) -> FileDiff:
        paths = [entry.old_path, entry.path] if entry.old_path else [entry.path]
        patch = self._git("diff", *_DIFF_FLAGS, "--cached", "--", *paths)
        additions, deletions = count_changes(patch)
        return FileDiff(
            path=entry.path,
            status=entry.status,
            additions=additions,
            deletions=deletions,
            patch=patch,
            old_file=self._show("HEAD", entry.old_path or entry.path) if entry.status != "added" else None,
            new_file=self._show("", entry.path) if entry.status != "deleted" else None,
        )

    # ------------------------------------------------------------------
    # File snapshots
    # ------------------------------------------------------------------

    def _show(self, ref: str, file_path: str) -> FileContents | None:
        """Contents of ``file_path`` at ``ref``; an empty ref reads the index."""
        contents = self._try_git("show", f"{ref}:{file_path}")
        if contents is None or _is_binary(contents):
            return None
        return FileContents(name=Path(file_path).name, contents=contents)

    def _working_contents(self, file_path: str) -> FileContents | None:
        try:
            data = (Path(self.repo_path) / file_path).read_bytes()
        except OSError:
            return None
        if _is_binary(data):
            return None
        return FileContents(name=Path(file_path).name, contents=data.decode("utf-8", errors="replace"))


class AdapterCache:
    """Per-repository-path memo of GitRepository instances.

    Owned by the composition root so its lifetime is explicit. Adapters are
    stateless, so sharing one across callers and threads is safe.
    """

    def __init__(self, factory=GitRepository):
        self._factory = factory
        self._adapters: dict[str, GitRepository] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(repo_path: str) -> str:
        return str(Path(repo_path).resolve())

    def get(self, repo_path: str) -> GitRepository:
        key = self._key(repo_path)
        with self._lock:
            adapter = self._adapters.get(key)
            if adapter is None:
                adapter = self._factory(key)
                self._adapters[key] = adapter
            return adapter

    def invalidate(self, repo_path: str) -> None:
        with self._lock:
            self._adapters.pop(self._key(repo_path), None)

    def clear(self) -> None:
        with self._lock:
            self._adapters.clear()

    def __contains__(self, repo_path: str) -> bool:
        return self._key(repo_path) in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)
