"""Reply-tree assembly for flat comment rows."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from cerebro_store.models import Comment


@dataclass
class CommentThread:
    """A comment and its replies, each reply itself a thread."""

    comment: Comment
    replies: list[CommentThread] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "comment": self.comment.to_dict(),
            "replies": [r.to_dict() for r in self.replies],
        }


def _sort_key(thread: CommentThread) -> tuple[int, str]:
    return thread.comment.timestamp, thread.comment.id


def _on_cycle(start_id: str, nodes: dict[str, CommentThread]) -> bool:
    """True if following parent pointers from ``start_id`` leads back to it."""
    seen: set[str] = set()
    current = nodes[start_id].comment.parent_id
    while current in nodes and current not in seen:
        if current == start_id:
            return True
        seen.add(current)
        current = nodes[current].comment.parent_id
    return False


def _sort_threads(threads: list[CommentThread]) -> None:
    threads.sort(key=_sort_key)
    for thread in threads:
        _sort_threads(thread.replies)


def build_comment_threads(comments: Iterable[Comment]) -> list[CommentThread]:
    """Turn a flat, already-filtered comment list into reply trees.

    A comment becomes a root when it has no parent, when its parent is not
    in ``comments`` (for example resolved and filtered out by the caller),
    or when its parent chain loops back to itself. No comment is dropped.
    Every level is ordered by ascending timestamp.
    """
    nodes = {c.id: CommentThread(comment=c) for c in comments}
    roots: list[CommentThread] = []

    for comment_id, thread in nodes.items():
        parent_id = thread.comment.parent_id
        if parent_id and parent_id in nodes and not _on_cycle(comment_id, nodes):
            nodes[parent_id].replies.append(thread)
        else:
            roots.append(thread)

    _sort_threads(roots)
    return roots


def threads_by_file(comments: Iterable[Comment]) -> dict[str, list[CommentThread]]:
    """Group comments per file path and build each file's threads."""
    per_file: dict[str, list[Comment]] = defaultdict(list)
    for comment in comments:
        per_file[comment.file_path].append(comment)
    return {path: build_comment_threads(items) for path, items in sorted(per_file.items())}
