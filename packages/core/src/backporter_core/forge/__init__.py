from __future__ import annotations

import os

from backporter_core.errors import ConfigError
from backporter_core.forge.base import BaseForge
from backporter_core.forge.types import CommitInfo, PullRequestInfo

__all__ = ["BaseForge", "CommitInfo", "PullRequestInfo", "create_forge"]


def create_forge(forge_type: str, token: str | None = None, forgejo_url: str | None = None) -> BaseForge:
    if forge_type == "github":
        from backporter_core.forge.github import GitHubForge

        return GitHubForge(token)
    if forge_type == "forgejo":
        from backporter_core.forge.forgejo import ForgejoForge

        base_url = forgejo_url or os.environ.get("FORGEJO_URL")
        if not base_url:
            raise ConfigError(
                "FORGEJO_URL not configured (set forgejo_url in the config file or the FORGEJO_URL environment variable)"
            )
        return ForgejoForge(base_url, token)
    raise ConfigError(f"Unknown forge type: {forge_type!r}. Choose 'github' or 'forgejo'.")
