"""Isolated config directory and a scratch git repository for CLI tests."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest


def _git(cwd: Path, *args: str) -> str:
    return subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True).stdout


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    """Point every invocation at a throwaway config directory and store."""
    path = tmp_path / "cfg"
    monkeypatch.setenv("CEREBRO_CONFIG_DIR", str(path))
    monkeypatch.delenv("CEREBRO_CONFIG", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    outside = tmp_path / "outside"
    outside.mkdir()
    monkeypatch.chdir(outside)
    return path


@pytest.fixture
def git_repo(tmp_path) -> Path:
    """A repository on ``main`` with one commit, then a ``feature`` branch with one more."""
    path = (tmp_path / "app").resolve()
    path.mkdir()
    _git(path, "init", "-q")
    _git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(path, "config", "user.name", "Test User")
    _git(path, "config", "user.email", "test@example.com")
    _git(path, "config", "commit.gpgsign", "false")
    (path / "src").mkdir()
    (path / "src" / "app.ts").write_text('import x from "x";\nconst a = 1;\nexport default a;\n')
    (path / "README.md").write_text("# app\n")
    _git(path, "add", "-A")
    _git(path, "commit", "-q", "-m", "initial")

    _git(path, "checkout", "-q", "-b", "feature")
    (path / "src" / "app.ts").write_text('import x from "x";\nconst a = 2;\nconst b = 3;\nconst c = 4;\nexport default a;\n')
    _git(path, "commit", "-q", "-am", "change app")
    return path


@pytest.fixture
def run_git():
    return _git
