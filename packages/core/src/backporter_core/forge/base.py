"""Base forge client implementing the Template Method pattern.

Every forge shares the same pull-request lookup algorithm:
    get_pull_request() → _fetch_pull_request()   ← differs per forge
                       → reject unmerged
                       → get_commit(merge sha)   ← differs per forge
                       → squashed = one parent

Adapters implement the raw API calls only, so adding a forge never touches
the engine or the pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import replace

from backporter_core.errors import ForgeError
from backporter_core.forge.types import CommitInfo, PullRequestInfo

logger = logging.getLogger(__name__)

# Applied to every HTTP call so an unresponsive forge cannot hang a run.
REQUEST_TIMEOUT = 30


class BaseForge(ABC):
    TIMEOUT: int = REQUEST_TIMEOUT

    @property
    @abstractmethod
    def name(self) -> str:
        """Short forge identifier, e.g. ``github``."""

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        """Return a merged pull request with its squash flag resolved.

        Raises ForgeError if the pull request is unknown or not merged.
        """
        pr = self._fetch_pull_request(owner, repo, number)
        if not pr.merged:
            raise ForgeError(f"PR #{number} is not merged")
        if not pr.merge_commit:
            raise ForgeError(f"PR #{number} has no merge commit")
        try:
            merge_commit = self.get_commit(owner, repo, pr.merge_commit)
        except ForgeError as e:
            raise ForgeError(f"Failed to get merge commit of PR #{number}: {e}") from e
        logger.debug("PR #%d merge commit %s has %d parent(s)", number, pr.merge_commit, len(merge_commit.parents))
        return replace(pr, squashed=len(merge_commit.parents) == 1)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each forge                                   #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _fetch_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        """Fetch one pull request without resolving ``squashed``."""

    @abstractmethod
    def get_commit(self, owner: str, repo: str, sha: str) -> CommitInfo:
        """Fetch one commit including its parent hashes."""

    @abstractmethod
    def list_recent_pull_requests(self, owner: str, repo: str, limit: int) -> list[PullRequestInfo]:
        """Return at most ``limit`` merged pull requests, most recently updated first."""

    @abstractmethod
    def list_open_pull_requests(self, owner: str, repo: str, head: str | None = None) -> list[PullRequestInfo]:
        """Return open pull requests, optionally only those whose head branch is ``head``."""

    @abstractmethod
    def create_pull_request(self, owner: str, repo: str, title: str, body: str, head: str, base: str) -> int:
        """Open a pull request and return its number."""
