"""Forge token resolution.

GitHub resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (CI / explicit override)
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)

Forgejo and Gitea only read FORGEJO_TOKEN.
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises. Callers decide whether a missing token is fatal.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out.
        return None

    if result.returncode == 0:
        gh_token = result.stdout.strip()
        if gh_token:
            logger.debug("Resolved GitHub token via gh CLI session.")
            return gh_token
    return None


def resolve_forge_token(config: dict) -> str | None:
    """Return the token for the configured forge, or None."""
    forge_type = config.get("forge_type")
    if forge_type == "github":
        return config.get("github_token") or resolve_github_token()
    if forge_type == "forgejo":
        return config.get("forgejo_token") or os.environ.get("FORGEJO_TOKEN")
    return None
