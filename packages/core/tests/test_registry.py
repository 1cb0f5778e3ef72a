"""Tests for repository registration, resolution and stale-entry pruning."""

from __future__ import annotations

import shutil

import pytest

from cerebro_core.errors import NotFoundError, ValidationError
from cerebro_core.registry import RepositoryRegistry

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


@pytest.fixture
def registry(store, adapters):
    return RepositoryRegistry(store, adapters)


class TestAdd:
    def test_add_detects_default_branch(self, repo, registry):
        tracked = registry.add(str(repo.path))
        assert tracked.path == str(repo.path)
        assert tracked.name == "app"
        assert tracked.base_branch == "main"

    def test_add_from_subdirectory_stores_top_level(self, repo, registry):
        tracked = registry.add(str(repo.path / "src"))
        assert tracked.path == str(repo.path)

    def test_add_is_deduplicated(self, repo, registry, store):
        first = registry.add(str(repo.path), base_branch="develop")
        second = registry.add(str(repo.path), base_branch="main")
        assert second.id == first.id
        assert second.base_branch == "develop"
        assert len(store.list_repos()) == 1

    def test_add_non_repository(self, tmp_path, registry):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(ValidationError):
            registry.add(str(plain))

    def test_add_missing_path(self, tmp_path, registry):
        with pytest.raises(ValidationError):
            registry.add(str(tmp_path / "missing"))


class TestResolve:
    def test_by_id_and_by_path(self, repo, registry):
        tracked = registry.add(str(repo.path))
        assert registry.resolve(tracked.id).id == tracked.id
        assert registry.resolve(str(repo.path)).id == tracked.id

    def test_unknown_identifier_does_not_fall_through(self, repo, registry, tmp_path):
        registry.add(str(repo.path))
        with pytest.raises(NotFoundError):
            registry.resolve("no-such-id", cwd=str(repo.path))

    def test_cwd_inside_tracked_repo(self, make_repo, repo, tmp_path, registry):
        other = make_repo(tmp_path / "other")
        tracked = registry.add(str(repo.path))
        registry.add(str(other.path))

        assert registry.resolve(cwd=str(repo.path / "src")).id == tracked.id

    def test_innermost_repo_wins(self, make_repo, repo, registry):
        nested = make_repo(repo.path / "vendor" / "lib")
        registry.add(str(repo.path))
        inner = registry.add(str(nested.path))

        assert registry.resolve(cwd=str(nested.path)).id == inner.id

    def test_falls_back_to_current(self, repo, tmp_path, registry):
        tracked = registry.add(str(repo.path))
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        assert registry.resolve(cwd=str(elsewhere)).id == tracked.id

    def test_nothing_tracked(self, tmp_path, registry):
        with pytest.raises(NotFoundError):
            registry.resolve(cwd=str(tmp_path))


class TestPruning:
    def test_list_prunes_deleted_directories(self, make_repo, repo, tmp_path, registry, store):
        other = make_repo(tmp_path / "doomed")
        keep = registry.add(str(repo.path))
        doomed = registry.add(str(other.path))

        shutil.rmtree(other.path)

        assert [r.id for r in registry.list_repos()] == [keep.id]
        assert store.get_repo(doomed.id) is None

    def test_stale_current_is_replaced(self, make_repo, repo, tmp_path, registry, store):
        doomed_builder = make_repo(tmp_path / "doomed")
        doomed = registry.add(str(doomed_builder.path))
        keep = registry.add(str(repo.path))
        assert store.get_current_repo_id() == doomed.id

        shutil.rmtree(doomed_builder.path)
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()

        assert registry.resolve(cwd=str(elsewhere)).id == keep.id
        assert store.get_current_repo_id() == keep.id

    def test_stale_identifier_is_not_found(self, repo, registry, store):
        tracked = registry.add(str(repo.path))
        shutil.rmtree(repo.path)
        with pytest.raises(NotFoundError):
            registry.resolve(tracked.id)
        assert store.get_repo(tracked.id) is None

    def test_missing_git_keeps_entries_and_their_data(self, repo, registry, store, tmp_path, monkeypatch):
        tracked = registry.add(str(repo.path))
        comment = store.add_comment(tracked.id, "src/app.ts", "keep me", "main", "abc1234")

        monkeypatch.setenv("PATH", str(tmp_path / "no-bin"))
        assert [r.id for r in registry.list_repos()] == [tracked.id]
        assert registry.resolve(tracked.id).id == tracked.id
        monkeypatch.undo()

        assert store.get_repo(tracked.id) is not None
        assert [c.id for c in store.get_comments(tracked.id)] == [comment.id]

    def test_failing_check_does_not_prune(self, store, adapters):
        from cerebro_core.errors import GitCommandError

        def broken(path):
            raise GitCommandError(["git", "rev-parse"], None, "git: not found")

        tracked = store.add_repo("/nowhere", "ghost")
        registry = RepositoryRegistry(store, adapters, is_repo=broken)
        assert [r.id for r in registry.list_repos()] == [tracked.id]
        assert store.get_repo(tracked.id) is not None

    def test_injected_repo_check(self, store, adapters):
        tracked = store.add_repo("/nowhere", "ghost")
        registry = RepositoryRegistry(store, adapters, is_repo=lambda path: False)
        assert registry.list_repos() == []
        assert store.get_repo(tracked.id) is None


class TestRemoveAndSelect:
    def test_remove(self, repo, registry, store):
        tracked = registry.add(str(repo.path))
        registry.remove(tracked.id)
        assert store.get_repo(tracked.id) is None

    def test_remove_unknown(self, registry):
        with pytest.raises(NotFoundError):
            registry.remove("nope")

    def test_set_current(self, make_repo, repo, tmp_path, registry, store):
        registry.add(str(repo.path))
        other = make_repo(tmp_path / "other")
        second = registry.add(str(other.path))

        assert registry.set_current(second.id).id == second.id
        assert store.get_current_repo_id() == second.id

    def test_set_current_unknown(self, registry):
        with pytest.raises(NotFoundError):
            registry.set_current("nope")
