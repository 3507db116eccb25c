"""Branch lifecycle strategies for a backport attempt.

The engine cherry-picks and classifies the same way in every mode; what
differs is where the commit lands and how the tree is restored afterwards:

  CurrentBranchLifecycle     check out the target branch itself; leave a
                              conflict in place for the user to resolve.
  DisposableBranchLifecycle  work on a scratch branch cut from the remote
                              target; undo everything on conflict or failure.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from backporter_core.compensation import CompensationChain
from backporter_core.errors import GitCommandError

if TYPE_CHECKING:
    from backporter_core.git.repository import GitRepository

logger = logging.getLogger(__name__)


class BranchLifecycle(ABC):
    #: Amend the picked commit with the provenance trailer.
    sign_commits: bool = True

    @abstractmethod
    def prepare(self, repo: GitRepository, target_branch: str) -> None:
        """Check out the branch the commit will be picked onto. Raises GitCommandError."""

    @abstractmethod
    def on_conflict(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        """Steps to run when the cherry-pick stopped on a conflict."""

    @abstractmethod
    def on_failure(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        """Steps to run when git failed outright after ``prepare`` succeeded."""

    @abstractmethod
    def on_success(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        """Best-effort steps once the caller is done with the picked commit."""


class CurrentBranchLifecycle(BranchLifecycle):
    """Pick directly onto the target branch, as a user would by hand."""

    def __init__(self, original_branch: str | None):
        self.original_branch = original_branch

    def prepare(self, repo: GitRepository, target_branch: str) -> None:
        logger.debug("Checking out target branch %s", target_branch)
        repo.checkout(target_branch)

    def _return_to_original(self, repo: GitRepository) -> CompensationChain:
        chain = CompensationChain()
        if self.original_branch:
            chain.add(f"checkout {self.original_branch}", lambda: repo.checkout(self.original_branch))
        return chain

    def on_conflict(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        # The user resolves the conflict on the target branch with
        # `git cherry-pick --continue` or `--abort`.
        return CompensationChain()

    def on_failure(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        return self._return_to_original(repo)

    def on_success(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        return self._return_to_original(repo)


class DisposableBranchLifecycle(BranchLifecycle):
    """Pick onto ``branch_name``, created from ``<remote>/<target>``."""

    sign_commits = False

    def __init__(self, branch_name: str, remote: str):
        self.branch_name = branch_name
        self.remote = remote

    def prepare(self, repo: GitRepository, target_branch: str) -> None:
        start = f"{self.remote}/{target_branch}"
        logger.debug("Creating branch %s from %s", self.branch_name, start)
        repo.create_branch(self.branch_name, start)
        try:
            repo.checkout(self.branch_name)
        except GitCommandError:
            CompensationChain().add(f"delete {self.branch_name}", lambda: repo.delete_branch(self.branch_name)).run()
            raise

    def discard(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        """Leave the scratch branch and delete it."""
        return (
            CompensationChain()
            .add(f"checkout {target_branch}", lambda: repo.checkout(target_branch))
            .add(f"delete {self.branch_name}", lambda: repo.delete_branch(self.branch_name))
        )

    def on_conflict(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        return self.on_failure(repo, target_branch)

    def on_failure(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        chain = CompensationChain().add("abort cherry-pick", repo.abort_cherry_pick)
        for name, action in self.discard(repo, target_branch).actions:
            chain.add(name, action)
        return chain

    def on_success(self, repo: GitRepository, target_branch: str) -> CompensationChain:
        return CompensationChain().add(f"checkout {target_branch}", lambda: repo.checkout(target_branch))
