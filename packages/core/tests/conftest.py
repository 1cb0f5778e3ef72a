"""Real git repositories for adapter, resolver and registry tests."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from cerebro_core.git import AdapterCache
from cerebro_store.sqlite import SQLiteStore


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)
    return result.stdout


class RepoBuilder:
    """Small helper that writes files and runs git in a scratch repository."""

    def __init__(self, path: Path):
        self.path = path

    def git(self, *args: str) -> str:
        return _git(self.path, *args)

    def write(self, rel: str, contents: str | bytes) -> Path:
        target = self.path / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(contents, bytes):
            target.write_bytes(contents)
        else:
            target.write_text(contents)
        return target

    def commit_all(self, message: str = "commit") -> str:
        self.git("add", "-A")
        self.git("commit", "-q", "-m", message)
        return self.git("rev-parse", "--short=7", "HEAD").strip()

    def head(self) -> str:
        return self.git("rev-parse", "--short=7", "HEAD").strip()


def init_repo(path: Path) -> RepoBuilder:
    path.mkdir(parents=True, exist_ok=True)
    builder = RepoBuilder(path.resolve())
    builder.git("init", "-q")
    builder.git("symbolic-ref", "HEAD", "refs/heads/main")
    builder.git("config", "user.name", "Test User")
    builder.git("config", "user.email", "test@example.com")
    builder.git("config", "commit.gpgsign", "false")
    return builder


@pytest.fixture
def empty_repo(tmp_path) -> RepoBuilder:
    """A repository with no commits yet."""
    return init_repo(tmp_path / "empty")


@pytest.fixture
def repo(tmp_path) -> RepoBuilder:
    """A repository on ``main`` with one commit containing src/app.ts."""
    builder = init_repo(tmp_path / "app")
    builder.write("src/app.ts", 'import x from "x";\nconst a = 1;\nexport default a;\n')
    builder.write("README.md", "# app\n")
    builder.commit_all("initial")
    return builder


@pytest.fixture
def store(tmp_path):
    s = SQLiteStore(db_path=str(tmp_path / "state" / "cerebro.db"))
    yield s
    s.close()


@pytest.fixture
def adapters():
    return AdapterCache()


@pytest.fixture
def make_repo():
    """Factory for additional repositories: ``make_repo(path)`` returns a RepoBuilder with one commit."""

    def _make(path: Path) -> RepoBuilder:
        builder = init_repo(path)
        builder.write("x.txt", "x\n")
        builder.commit_all("initial")
        return builder

    return _make
