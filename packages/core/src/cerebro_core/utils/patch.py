"""Parsing of git's textual output into structured records.

Everything here is pure string handling so it can be tested without a
repository. The git invocations live in cerebro_core.git.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import NamedTuple

_ESCAPES = {
    "a": "\a",
    "b": "\b",
    "t": "\t",
    "n": "\n",
    "v": "\v",
    "f": "\f",
    "r": "\r",
    '"': '"',
    "\\": "\\",
}

# "src/{old => new}/file.py" is numstat's compact rename notation.
_BRACE_RENAME_RE = re.compile(r"^(?P<prefix>.*)\{(?P<old>.*) => (?P<new>.*)\}(?P<suffix>.*)$")


def count_changes(patch: str) -> tuple[int, int]:
    """Count added and deleted content lines in a unified diff.

    Only lines inside ``@@`` hunks are counted, so the ``+++``/``---`` file
    headers are skipped while a deleted ``-- comment`` line, which reads
    ``--- comment`` in the patch, still counts.
    """
    additions = 0
    deletions = 0
    in_hunk = False
    for line in patch.split("\n"):
        if line.startswith("diff --git "):
            in_hunk = False
            continue
        if line.startswith("@@"):
            in_hunk = True
            continue
        if not in_hunk:
            continue
        if line.startswith("+"):
            additions += 1
        elif line.startswith("-"):
            deletions += 1
    return additions, deletions


def status_from_letter(code: str) -> str:
    """Map a name-status code (``A``, ``D``, ``R100``, ``M`` ...) to a file status."""
    letter = code[:1]
    if letter == "A":
        return "added"
    if letter == "D":
        return "deleted"
    if letter == "R":
        return "renamed"
    return "modified"


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of unusual paths (``"a\\tb"``, octal UTF-8 bytes)."""
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            octal = body[i + 1 : i + 4]
            if len(octal) == 3 and all(c in "01234567" for c in octal):
                out.append(int(octal, 8))
                i += 4
                continue
            out.extend(_ESCAPES.get(nxt, nxt).encode("utf-8"))
            i += 2
            continue
        out.extend(ch.encode("utf-8"))
        i += 1
    return out.decode("utf-8", errors="replace")


def expand_rename_path(path: str) -> str:
    """Return the destination path of a numstat rename entry.

    ``old.py => new.py`` gives ``new.py``; ``src/{a => b}/x.py`` gives
    ``src/b/x.py``. Anything else is returned unchanged.
    """
    match = _BRACE_RENAME_RE.match(path)
    if match:
        joined = match.group("prefix") + match.group("new") + match.group("suffix")
        return re.sub(r"/{2,}", "/", joined)
    if " => " in path:
        return path.split(" => ", 1)[1]
    return path


class NameStatus(NamedTuple):
    status: str
    path: str
    old_path: str | None = None


def parse_name_status_line(line: str) -> NameStatus | None:
    """Parse one ``diff --name-status`` line.

    Renames and copies carry two paths (``R100\\told\\tnew``); the new path is
    the record path and the first one is kept as ``old_path``. Blank or
    malformed lines return None.
    """
    parts = line.rstrip("\r").split("\t")
    if len(parts) < 2 or not parts[0]:
        return None
    path = unquote_path(parts[-1])
    if not path:
        return None
    old_path = unquote_path(parts[1]) if len(parts) > 2 else None
    return NameStatus(status_from_letter(parts[0]), path, old_path)


def parse_name_status(output: str) -> list[NameStatus]:
    entries = []
    for line in output.splitlines():
        parsed = parse_name_status_line(line)
        if parsed is not None:
            entries.append(parsed)
    return entries


def parse_numstat_line(line: str) -> tuple[str, int, int] | None:
    """Parse one ``diff --numstat`` line into ``(path, additions, deletions)``.

    Binary files report ``-`` for both counts; they map to 0/0.
    """
    parts = line.rstrip("\r").split("\t", 2)
    if len(parts) < 3 or not parts[2]:
        return None
    adds, dels, raw_path = parts
    try:
        additions = 0 if adds == "-" else int(adds)
        deletions = 0 if dels == "-" else int(dels)
    except ValueError:
        return None
    return expand_rename_path(unquote_path(raw_path)), additions, deletions


def parse_numstat(output: str) -> dict[str, tuple[int, int]]:
    stats: dict[str, tuple[int, int]] = {}
    for line in output.splitlines():
        parsed = parse_numstat_line(line)
        if parsed is not None:
            path, additions, deletions = parsed
            stats[path] = (additions, deletions)
    return stats


def _hunk_range(start: int, count: int) -> str:
    # git omits the count when it is exactly one line.
    return str(start) if count == 1 else f"{start},{count}"


def _content_lines(contents: str) -> tuple[list[str], bool]:
    """Split file text into lines; the flag is True when the final newline is missing."""
    if not contents:
        return [], False
    lines = contents.split("\n")
    if lines[-1] == "":
        return lines[:-1], False
    return lines, True


def create_add_patch(file_path: str, contents: str) -> str:
    """Synthesize a unified diff that adds ``contents`` as a new file."""
    lines, no_newline = _content_lines(contents)
    patch = [
        f"diff --git a/{file_path} b/{file_path}",
        "new file mode 100644",
        "--- /dev/null",
        f"+++ b/{file_path}",
    ]
    if lines:
        patch.append(f"@@ -0,0 +{_hunk_range(1, len(lines))} @@")
        patch.extend(f"+{line}" for line in lines)
        if no_newline:
            patch.append("\\ No newline at end of file")
    return "\n".join(patch) + "\n"


def create_delete_patch(file_path: str, contents: str) -> str:
    """Synthesize a unified diff that deletes a file whose last content was ``contents``."""
    lines, no_newline = _content_lines(contents)
    patch = [
        f"diff --git a/{file_path} b/{file_path}",
        "deleted file mode 100644",
        f"--- a/{file_path}",
        "+++ /dev/null",
    ]
    if lines:
        patch.append(f"@@ -{_hunk_range(1, len(lines))} +0,0 @@")
        patch.extend(f"-{line}" for line in lines)
        if no_newline:
            patch.append("\\ No newline at end of file")
    return "\n".join(patch) + "\n"


def create_binary_add_patch(file_path: str) -> str:
    return "\n".join(
        [
            f"diff --git a/{file_path} b/{file_path}",
            "new file mode 100644",
            f"Binary files /dev/null and b/{file_path} differ",
        ]
    ) + "\n"


@dataclass
class GitStatus:
    """Parsed ``git status --porcelain=v1 -z`` output.

    ``codes`` maps each path to its two-letter XY code (X = index,
    Y = working tree). The list properties are the views the diff modes need.
    """

    codes: dict[str, str] = field(default_factory=dict)

    def _paths(self, predicate) -> list[str]:
        return [path for path, code in self.codes.items() if predicate(code)]

    @property
    def untracked(self) -> list[str]:
        return self._paths(lambda code: code == "??")

    @property
    def modified(self) -> list[str]:
        """Tracked files whose working tree differs from the index."""
        return self._paths(lambda code: code[1] in "MT" and not _is_conflict(code))

    @property
    def deleted(self) -> list[str]:
        """Tracked files deleted from the working tree but not from the index."""
        return self._paths(lambda code: code[1] == "D" and not _is_conflict(code))

    @property
    def staged(self) -> list[str]:
        return self._paths(lambda code: code[0] in "MTADRC" and not _is_conflict(code))


def _is_conflict(code: str) -> bool:
    return "U" in code or code in ("AA", "DD")


def parse_porcelain_status(output: str) -> GitStatus:
    """Parse NUL-separated porcelain v1 status records.

    Rename and copy records are followed by an extra field holding the
    original path, which is skipped.
    """
    status = GitStatus()
    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if len(record) < 4:
            continue
        code, path = record[:2], record[3:]
        if code == "!!":
            continue
        status.codes[path] = code
        if code[0] in "RC":
            i += 1
    return status
