"""Pull-request comments for the checked-out branch, via the GitHub API.

Only remotes hosted on github.com are looked up; anything else yields an
empty result rather than an error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urlparse

from github import Auth, Github

logger = logging.getLogger(__name__)

_SSH_REMOTE_RE = re.compile(r"^(?:ssh://)?git@github\.com[:/](?P<owner>[^/]+)/(?P<repo>.+?)(?:\.git)?/?$")


@dataclass
class GithubRepoInfo:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass
class GithubComment:
    id: int
    body: str
    user: str
    url: str
    created_at: str  # ISO-8601 UTC timestamp
    type: str  # "review" | "issue"
    path: str | None = None
    line: int | None = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "body": self.body,
            "user": self.user,
            "url": self.url,
            "created_at": self.created_at,
            "type": self.type,
        }
        if self.path is not None:
            data["path"] = self.path
        if self.line is not None:
            data["line"] = self.line
        return data


@dataclass
class GithubComments:
    pr_number: int | None = None
    comments: list[GithubComment] = field(default_factory=list)
    repo: GithubRepoInfo | None = None


def parse_github_remote(remote_url: str | None) -> GithubRepoInfo | None:
    """Extract owner/repo from an SSH or HTTPS github.com remote URL."""
    if not remote_url:
        return None
    match = _SSH_REMOTE_RE.match(remote_url.strip())
    if match:
        return GithubRepoInfo(owner=match.group("owner"), repo=match.group("repo"))

    parsed = urlparse(remote_url.strip())
    if parsed.scheme not in ("http", "https") or parsed.hostname != "github.com":
        return None
    parts = parsed.path.strip("/").removesuffix(".git").split("/")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return GithubRepoInfo(owner=parts[0], repo=parts[1])


def get_client(token: str | None = None) -> Github:
    return Github(auth=Auth.Token(token)) if token else Github()


def find_pull_request(repo, owner: str, branch: str):
    """Return the most recent PR (any state) whose head is ``owner:branch``, or None."""
    for pr in repo.get_pulls(state="all", head=f"{owner}:{branch}"):
        return pr
    return None


def _iso(value) -> str:
    return value.isoformat() if value is not None else ""


def get_review_comments(pr) -> list[GithubComment]:
    return [
        GithubComment(
            id=c.id,
            body=c.body or "",
            user=c.user.login if c.user else "",
            url=c.html_url,
            created_at=_iso(c.created_at),
            type="review",
            path=c.path,
            line=getattr(c, "line", None),
        )
        for c in pr.get_review_comments()
    ]


def get_issue_comments(pr) -> list[GithubComment]:
    return [
        GithubComment(
            id=c.id,
            body=c.body or "",
            user=c.user.login if c.user else "",
            url=c.html_url,
            created_at=_iso(c.created_at),
            type="issue",
        )
        for c in pr.get_issue_comments()
    ]


def fetch_github_comments_for_branch(remote_url: str | None, branch: str, token: str | None = None) -> GithubComments:
    """Review and issue comments on the PR for ``branch``, oldest first."""
    info = parse_github_remote(remote_url)
    if info is None:
        return GithubComments()

    repo = get_client(token).get_repo(info.full_name)
    pr = find_pull_request(repo, info.owner, branch)
    if pr is None:
        logger.debug("No pull request found for %s:%s", info.full_name, branch)
        return GithubComments(repo=info)

    comments = get_review_comments(pr) + get_issue_comments(pr)
    comments.sort(key=lambda c: c.created_at)
    return GithubComments(pr_number=pr.number, comments=comments, repo=info)
