"""Error taxonomy shared by the diff engine and its transports.

Transports (CLI, HTTP, agent tools) map these to their own status codes;
nothing in the core knows about exit codes or HTTP statuses.
"""

from __future__ import annotations

from cerebro_store.errors import StorageError

__all__ = [
    "CerebroError",
    "ExternalToolError",
    "GitCommandError",
    "InvalidReferenceError",
    "NotFoundError",
    "StorageError",
    "ValidationError",
]


class CerebroError(Exception):
    """Base class for errors raised by cerebro_core."""


class NotFoundError(CerebroError):
    """Unknown repository, comment or note id, or a file with no change in the requested mode."""


class ValidationError(CerebroError):
    """A request is malformed: empty text, bad line number, unknown mode or note type."""


class InvalidReferenceError(CerebroError):
    """The requested base ref does not exist in the repository.

    Carries the engine's best guess at the default branch so the caller can
    offer it as the fix instead of an opaque git error.
    """

    def __init__(self, ref: str, default_branch: str | None):
        self.ref = ref
        self.default_branch = default_branch
        message = f"Base branch {ref!r} does not exist in this repository."
        if default_branch and default_branch != ref:
            message += f" Did you mean {default_branch!r}?"
        super().__init__(message)


class ExternalToolError(CerebroError):
    """An external tool invocation failed for a reason other than a missing ref."""

    def __init__(self, args: list[str], returncode: int | None, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr.splitlines()[0] if self.stderr else f"exit status {returncode}"
        super().__init__(f"`{' '.join(self.args_list)}` failed: {detail}")


class GitCommandError(ExternalToolError):
    """A git command exited non-zero, or git is not installed."""
