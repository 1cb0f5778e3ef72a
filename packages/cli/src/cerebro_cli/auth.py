"""GitHub token lookup for the `github` commands.

Sources, first hit wins:
  1. GITHUB_TOKEN environment variable
  2. github_token in config.yml
  3. the GitHub CLI session (`gh auth token`)

No token is not an error: public repositories are readable anonymously,
just with a lower rate limit.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

_GH_TIMEOUT = 5


def _gh_cli_token() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=_GH_TIMEOUT,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        logger.debug("No token from gh CLI: %s", type(e).__name__)
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token(config: dict | None = None) -> str | None:
    """Return the first available GitHub token, or None."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    configured = (config or {}).get("github_token")
    if configured:
        return configured

    token = _gh_cli_token()
    if token:
        logger.debug("Using GitHub token from the gh CLI session.")
    return token
