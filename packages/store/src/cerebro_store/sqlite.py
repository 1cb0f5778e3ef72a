"""SQLiteStore: the durable review-state store.

Why SQLite:
- Ships with Python, no extra dependencies.
- WAL journal mode lets the always-on server, one-shot CLI invocations and
  an automation agent read while another process writes.
- Foreign keys with ON DELETE CASCADE make repository removal take every
  viewed mark, comment and note with it; no orphan sweeps.

Schema:
  config        — key/value pairs shared across processes (current repo)
  repos         — one row per tracked repository, unique by absolute path
  viewed_files  — existence-only marks keyed by repo/branch/commit/path
  comments      — review comments, reply edges via parent_id
  notes         — agent/user notes with a type and optional JSON metadata

Every mutation is a single statement in autocommit mode, except the two
registry operations that touch both repos and config (add/remove), which
run inside one IMMEDIATE transaction.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from cerebro_store.base import BaseStore
from cerebro_store.errors import StorageError
from cerebro_store.models import Comment, Note, Repository, now_ms

if TYPE_CHECKING:
    from cerebro_store.models import CommitRef

logger = logging.getLogger(__name__)

_CURRENT_REPO_KEY = "currentRepo"

# Seconds a connection waits on a lock held by another process before
# giving up with "database is locked".
_BUSY_TIMEOUT = 5.0

_SCHEMA = """
CREATE TABLE IF NOT EXISTS config (
    key    TEXT PRIMARY KEY,
    value  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS repos (
    id           TEXT PRIMARY KEY,
    path         TEXT UNIQUE NOT NULL,
    name         TEXT NOT NULL,
    base_branch  TEXT NOT NULL,
    added_at     INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS viewed_files (
    repo_id      TEXT NOT NULL,
    branch       TEXT NOT NULL,
    commit_hash  TEXT NOT NULL,
    file_path    TEXT NOT NULL,
    viewed_at    INTEGER NOT NULL,
    PRIMARY KEY (repo_id, branch, commit_hash, file_path),
    FOREIGN KEY (repo_id) REFERENCES repos(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_viewed_files_lookup ON viewed_files (repo_id, branch, commit_hash);
CREATE TABLE IF NOT EXISTS comments (
    id           TEXT PRIMARY KEY,
    repo_id      TEXT NOT NULL,
    file_path    TEXT NOT NULL,
    line_number  INTEGER,
    text         TEXT NOT NULL,
    branch       TEXT NOT NULL,
    commit_hash  TEXT NOT NULL,
    created_at   INTEGER NOT NULL,
    parent_id    TEXT,
    resolved     INTEGER DEFAULT 0,
    resolved_by  TEXT,
    resolved_at  INTEGER,
    FOREIGN KEY (repo_id) REFERENCES repos(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_comments_repo_branch ON comments (repo_id, branch, resolved);
CREATE TABLE IF NOT EXISTS notes (
    id            TEXT PRIMARY KEY,
    repo_id       TEXT NOT NULL,
    file_path     TEXT NOT NULL,
    line_number   INTEGER NOT NULL,
    text          TEXT NOT NULL,
    branch        TEXT NOT NULL,
    commit_hash   TEXT NOT NULL,
    author        TEXT NOT NULL,
    type          TEXT NOT NULL,
    metadata      TEXT,
    created_at    INTEGER NOT NULL,
    dismissed     INTEGER DEFAULT 0,
    dismissed_by  TEXT,
    dismissed_at  INTEGER,
    FOREIGN KEY (repo_id) REFERENCES repos(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_notes_repo_branch ON notes (repo_id, branch, dismissed);
"""


def generate_id() -> str:
    return uuid.uuid4().hex


class SQLiteStore(BaseStore):
    """Stores review state in a local SQLite database file.

    One connection per store instance. Separate processes each open their own
    instance on the same file; threads inside one process may share an
    instance, in which case calls are serialised on an internal lock because
    a sqlite3 connection must not be used by two threads at once.
    """

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._lock = threading.RLock()
        try:
            if db_path != ":memory:":
                Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                db_path,
                timeout=_BUSY_TIMEOUT,
                isolation_level=None,
                check_same_thread=False,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.executescript(_SCHEMA)
            self._migrate()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open review store at {db_path}: {e}") from e

    @property
    def db_path(self) -> str:
        return self._db_path

    def _migrate(self) -> None:
        # Databases created before replies existed lack comments.parent_id.
        columns = {row["name"] for row in self._conn.execute("PRAGMA table_info(comments)")}
        if "parent_id" not in columns:
            logger.info("Migrating %s: adding comments.parent_id", self._db_path)
            self._conn.execute("ALTER TABLE comments ADD COLUMN parent_id TEXT")

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    def _fetch_all(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        """Read path: storage failures degrade to an empty result."""
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.warning("Review store read failed (%s): %s", type(e).__name__, e)
                return []

    def _fetch_one(self, sql: str, params: tuple = ()) -> sqlite3.Row | None:
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchone()
            except sqlite3.Error as e:
                logger.warning("Review store read failed (%s): %s", type(e).__name__, e)
                return None

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Write path: storage failures are raised, never swallowed."""
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                raise StorageError(f"Review store write failed: {e}") from e

    @contextmanager
    def _transaction(self):
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
                try:
                    yield self._conn
                except BaseException:
                    self._conn.execute("ROLLBACK")
                    raise
                self._conn.execute("COMMIT")
            except sqlite3.Error as e:
                raise StorageError(f"Review store write failed: {e}") from e

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def list_repos(self) -> list[Repository]:
        rows = self._fetch_all("SELECT * FROM repos ORDER BY added_at DESC, rowid DESC")
        return [self._row_to_repo(r) for r in rows]

    def get_repo(self, repo_id: str) -> Repository | None:
        row = self._fetch_one("SELECT * FROM repos WHERE id = ?", (repo_id,))
        return self._row_to_repo(row) if row else None

    def get_repo_by_path(self, path: str) -> Repository | None:
        row = self._fetch_one("SELECT * FROM repos WHERE path = ?", (path,))
        return self._row_to_repo(row) if row else None

    def add_repo(self, path: str, name: str, base_branch: str = "main") -> Repository:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO repos (id, path, name, base_branch, added_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(path) DO NOTHING
                """,
                (generate_id(), path, name, base_branch, now_ms()),
            )
            row = conn.execute("SELECT * FROM repos WHERE path = ?", (path,)).fetchone()
            if cursor.rowcount:
                conn.execute(
                    "INSERT OR IGNORE INTO config (key, value) VALUES (?, ?)",
                    (_CURRENT_REPO_KEY, row["id"]),
                )
                logger.info("Tracking repository %s (%s)", name, path)
        return self._row_to_repo(row)

    def remove_repo(self, repo_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM repos WHERE id = ?", (repo_id,))
            if not cursor.rowcount:
                return False
            current = conn.execute("SELECT value FROM config WHERE key = ?", (_CURRENT_REPO_KEY,)).fetchone()
            if current is not None and current["value"] == repo_id:
                successor = conn.execute("SELECT id FROM repos ORDER BY added_at DESC, rowid DESC LIMIT 1").fetchone()
                if successor is not None:
                    conn.execute(
                        "UPDATE config SET value = ? WHERE key = ?",
                        (successor["id"], _CURRENT_REPO_KEY),
                    )
                else:
                    conn.execute("DELETE FROM config WHERE key = ?", (_CURRENT_REPO_KEY,))
        logger.info("Removed repository %s", repo_id)
        return True

    def update_repo(self, repo_id: str, base_branch: str | None = None, name: str | None = None) -> bool:
        if self.get_repo(repo_id) is None:
            return False
        if base_branch is not None:
            self._execute("UPDATE repos SET base_branch = ? WHERE id = ?", (base_branch, repo_id))
        if name is not None:
            self._execute("UPDATE repos SET name = ? WHERE id = ?", (name, repo_id))
        return True

    def get_current_repo_id(self) -> str | None:
        row = self._fetch_one("SELECT value FROM config WHERE key = ?", (_CURRENT_REPO_KEY,))
        return row["value"] if row else None

    def set_current_repo(self, repo_id: str | None) -> bool:
        if repo_id is None:
            self._execute("DELETE FROM config WHERE key = ?", (_CURRENT_REPO_KEY,))
            return True
        # The subquery validates existence in the same statement as the switch.
        cursor = self._execute(
            """
            INSERT OR REPLACE INTO config (key, value)
            SELECT ?, id FROM repos WHERE id = ?
            """,
            (_CURRENT_REPO_KEY, repo_id),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Viewed marks
    # ------------------------------------------------------------------

    def get_viewed_files(self, repo_id: str, branch: str, commit: CommitRef) -> set[str]:
        rows = self._fetch_all(
            "SELECT file_path FROM viewed_files WHERE repo_id = ? AND branch = ? AND commit_hash = ?",
            (repo_id, branch, str(commit)),
        )
        return {r["file_path"] for r in rows}

    def set_file_viewed(self, repo_id: str, branch: str, commit: CommitRef, file_path: str, viewed: bool) -> None:
        if viewed:
            self._execute(
                """
                INSERT OR REPLACE INTO viewed_files (repo_id, branch, commit_hash, file_path, viewed_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (repo_id, branch, str(commit), file_path, now_ms()),
            )
        else:
            self._execute(
                "DELETE FROM viewed_files WHERE repo_id = ? AND branch = ? AND commit_hash = ? AND file_path = ?",
                (repo_id, branch, str(commit), file_path),
            )

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def get_comments(self, repo_id: str, branch: str | None = None) -> list[Comment]:
        if branch:
            rows = self._fetch_all(
                """
                SELECT * FROM comments
                WHERE repo_id = ? AND branch = ? AND resolved = 0
                ORDER BY created_at DESC, rowid DESC
                """,
                (repo_id, branch),
            )
        else:
            rows = self._fetch_all(
                "SELECT * FROM comments WHERE repo_id = ? ORDER BY created_at DESC, rowid DESC",
                (repo_id,),
            )
        return [self._row_to_comment(r) for r in rows]

    def get_comment(self, comment_id: str) -> Comment | None:
        row = self._fetch_one("SELECT * FROM comments WHERE id = ?", (comment_id,))
        return self._row_to_comment(row) if row else None

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
        comment = Comment(
            id=generate_id(),
            repo_id=repo_id,
            file_path=file_path,
            text=text,
            branch=branch,
            commit=commit,
            timestamp=now_ms(),
            line_number=line_number,
            parent_id=parent_id,
        )
        self._execute(
            """
            INSERT INTO comments
              (id, repo_id, file_path, line_number, text, branch, commit_hash, created_at, parent_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                comment.id,
                repo_id,
                file_path,
                line_number,
                text,
                branch,
                commit,
                comment.timestamp,
                parent_id,
            ),
        )
        return comment

    def resolve_comment(self, comment_id: str, resolved_by: str = "user", repo_id: str | None = None) -> bool:
        return self._settle("comments", "resolved", comment_id, resolved_by, repo_id)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def get_notes(self, repo_id: str, branch: str | None = None) -> list[Note]:
        if branch:
            rows = self._fetch_all(
                """
                SELECT * FROM notes
                WHERE repo_id = ? AND branch = ? AND dismissed = 0
                ORDER BY created_at DESC, rowid DESC
                """,
                (repo_id, branch),
            )
        else:
            rows = self._fetch_all(
                "SELECT * FROM notes WHERE repo_id = ? ORDER BY created_at DESC, rowid DESC",
                (repo_id,),
            )
        return [self._row_to_note(r) for r in rows]

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
        note = Note(
            id=generate_id(),
            repo_id=repo_id,
            file_path=file_path,
            line_number=line_number,
            text=text,
            branch=branch,
            commit=commit,
            author=author,
            type=type,
            timestamp=now_ms(),
            metadata=dict(metadata) if metadata else None,
        )
        self._execute(
            """
            INSERT INTO notes
              (id, repo_id, file_path, line_number, text, branch, commit_hash,
               author, type, metadata, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                note.id,
                repo_id,
                file_path,
                line_number,
                text,
                branch,
                commit,
                author,
                type,
                json.dumps(note.metadata) if note.metadata else None,
                note.timestamp,
            ),
        )
        return note

    def dismiss_note(self, note_id: str, dismissed_by: str = "user", repo_id: str | None = None) -> bool:
        return self._settle("notes", "dismissed", note_id, dismissed_by, repo_id)

    def _settle(self, table: str, flag: str, item_id: str, actor: str, repo_id: str | None) -> bool:
        """One-way resolved/dismissed transition.

        The update only touches unsettled rows, so the first who/when wins. A
        row that was already settled still counts as found.
        """
        scope = " AND repo_id = ?" if repo_id is not None else ""
        scope_params: tuple = (repo_id,) if repo_id is not None else ()
        cursor = self._execute(
            f"UPDATE {table} SET {flag} = 1, {flag}_by = ?, {flag}_at = ? WHERE id = ?{scope} AND {flag} = 0",
            (actor, now_ms(), item_id, *scope_params),
        )
        if cursor.rowcount:
            return True
        return self._fetch_one(f"SELECT 1 FROM {table} WHERE id = ?{scope}", (item_id, *scope_params)) is not None

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_repo(row: sqlite3.Row) -> Repository:
        return Repository(
            id=row["id"],
            path=row["path"],
            name=row["name"],
            base_branch=row["base_branch"],
            added_at=row["added_at"],
        )

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> Comment:
        return Comment(
            id=row["id"],
            repo_id=row["repo_id"],
            file_path=row["file_path"],
            text=row["text"],
            branch=row["branch"],
            commit=row["commit_hash"],
            timestamp=row["created_at"],
            line_number=row["line_number"],
            parent_id=row["parent_id"],
            resolved=row["resolved"] == 1,
            resolved_by=row["resolved_by"],
            resolved_at=row["resolved_at"],
        )

    @staticmethod
    def _row_to_note(row: sqlite3.Row) -> Note:
        metadata = None
        if row["metadata"]:
            try:
                metadata = json.loads(row["metadata"])
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable metadata on note %s", row["id"])
        return Note(
            id=row["id"],
            repo_id=row["repo_id"],
            file_path=row["file_path"],
            line_number=row["line_number"],
            text=row["text"],
            branch=row["branch"],
            commit=row["commit_hash"],
            author=row["author"],
            type=row["type"],
            timestamp=row["created_at"],
            metadata=metadata,
            dismissed=row["dismissed"] == 1,
            dismissed_by=row["dismissed_by"],
            dismissed_at=row["dismissed_at"],
        )
