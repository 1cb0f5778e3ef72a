"""Tests for GitHub pull request helper functions."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from cerebro_core.gh.pull_request import (
    fetch_github_comments_for_branch,
    find_pull_request,
    get_issue_comments,
    get_review_comments,
    parse_github_remote,
)


def _gh_comment(cid, body, login, created, path=None, line=None):
    c = MagicMock()
    c.id = cid
    c.body = body
    c.user.login = login
    c.html_url = f"https://github.com/acme/app/pull/7#c{cid}"
    c.created_at = created
    c.path = path
    c.line = line
    return c


class TestParseGithubRemote:
    @pytest.mark.parametrize(
        "url",
        [
            "git@github.com:acme/app.git",
            "git@github.com:acme/app",
            "ssh://git@github.com/acme/app.git",
            "https://github.com/acme/app.git",
            "https://github.com/acme/app",
            "https://token@github.com/acme/app.git",
        ],
    )
    def test_github_remotes(self, url):
        info = parse_github_remote(url)
        assert info.full_name == "acme/app"

    @pytest.mark.parametrize(
        "url",
        [None, "", "git@gitlab.com:acme/app.git", "https://example.com/acme/app.git", "https://github.com/acme"],
    )
    def test_other_remotes(self, url):
        assert parse_github_remote(url) is None


class TestFindPullRequest:
    def test_returns_first_match(self):
        repo = MagicMock()
        pr = MagicMock()
        repo.get_pulls.return_value = [pr, MagicMock()]
        assert find_pull_request(repo, "acme", "feature") is pr
        repo.get_pulls.assert_called_once_with(state="all", head="acme:feature")

    def test_returns_none_when_no_pr(self):
        repo = MagicMock()
        repo.get_pulls.return_value = []
        assert find_pull_request(repo, "acme", "feature") is None


class TestComments:
    def test_review_comments_carry_location(self):
        pr = MagicMock()
        created = datetime(2024, 1, 2, tzinfo=timezone.utc)
        pr.get_review_comments.return_value = [_gh_comment(1, "nit", "alice", created, path="a.py", line=4)]

        [comment] = get_review_comments(pr)
        assert comment.type == "review"
        assert comment.path == "a.py"
        assert comment.line == 4
        assert comment.created_at == created.isoformat()

    def test_issue_comments_have_no_location(self):
        pr = MagicMock()
        pr.get_issue_comments.return_value = [_gh_comment(2, None, "bob", datetime(2024, 1, 1, tzinfo=timezone.utc))]

        [comment] = get_issue_comments(pr)
        assert comment.type == "issue"
        assert comment.body == ""
        assert "path" not in comment.to_dict()


class TestFetchForBranch:
    def test_non_github_remote_skips_api(self, mocker):
        get_client = mocker.patch("cerebro_core.gh.pull_request.get_client")
        result = fetch_github_comments_for_branch("git@gitlab.com:acme/app.git", "feature")
        assert result.pr_number is None
        assert result.comments == []
        get_client.assert_not_called()

    def test_no_pull_request(self, mocker):
        client = MagicMock()
        client.get_repo.return_value.get_pulls.return_value = []
        mocker.patch("cerebro_core.gh.pull_request.get_client", return_value=client)

        result = fetch_github_comments_for_branch("git@github.com:acme/app.git", "feature")
        assert result.pr_number is None
        assert result.repo.full_name == "acme/app"

    def test_merges_and_sorts_comments(self, mocker):
        pr = MagicMock()
        pr.number = 7
        pr.get_review_comments.return_value = [
            _gh_comment(1, "later", "alice", datetime(2024, 1, 3, tzinfo=timezone.utc), path="a.py", line=1)
        ]
        pr.get_issue_comments.return_value = [_gh_comment(2, "earlier", "bob", datetime(2024, 1, 1, tzinfo=timezone.utc))]
        client = MagicMock()
        client.get_repo.return_value.get_pulls.return_value = [pr]
        get_client = mocker.patch("cerebro_core.gh.pull_request.get_client", return_value=client)

        result = fetch_github_comments_for_branch("https://github.com/acme/app.git", "feature", token="tok")

        get_client.assert_called_once_with("tok")
        client.get_repo.assert_called_once_with("acme/app")
        assert result.pr_number == 7
        assert [c.body for c in result.comments] == ["earlier", "later"]
