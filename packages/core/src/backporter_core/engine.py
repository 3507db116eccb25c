"""Core backport orchestration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from backporter_core.errors import (
    BranchNotFoundError,
    DirtyWorkingTreeError,
    ForgeNotConfiguredError,
    GitCommandError,
    NotSquashMergedError,
)
from backporter_core.lifecycle import CurrentBranchLifecycle
from backporter_core.models import BackportOutcome, OutcomeStatus
from backporter_core.version import signature_message
from backporter_store.models import HistoryRecord
from backporter_store.noop import NoOpStore

if TYPE_CHECKING:
    from backporter_core.forge.base import BaseForge
    from backporter_core.forge.types import PullRequestInfo
    from backporter_core.git.repository import GitRepository
    from backporter_core.lifecycle import BranchLifecycle
    from backporter_store.base import BaseStore

logger = logging.getLogger(__name__)


class BackportEngine:
    """Replicates one commit or squash-merged pull request onto a target branch.

    The working tree is global state: one engine per checkout, one
    operation at a time.
    """

    def __init__(
        self,
        repo: GitRepository,
        forge: BaseForge | None = None,
        store: BaseStore | None = None,
        owner: str = "",
        repo_name: str = "",
    ):
        self.repo = repo
        self.forge = forge
        self.store = store if store is not None else NoOpStore()
        self.owner = owner
        self.repo_name = repo_name

    # ------------------------------------------------------------------ #
    # Cherry-pick primitive                                                #
    # ------------------------------------------------------------------ #

    def apply(self, commit_sha: str, target_branch: str, lifecycle: BranchLifecycle) -> BackportOutcome:
        """Pick ``commit_sha`` onto ``target_branch`` and classify the result.

        Never raises for git failures: they become a FAILED outcome after the
        lifecycle's compensation ran. A SUCCESS outcome leaves HEAD on the
        picked commit; the caller runs ``lifecycle.on_success`` when done.
        """
        try:
            lifecycle.prepare(self.repo, target_branch)
        except GitCommandError as e:
            return self._failed(commit_sha, target_branch, e, f"failed to prepare branch: {e}")

        try:
            result = self.repo.cherry_pick(commit_sha)
        except GitCommandError as e:
            lifecycle.on_failure(self.repo, target_branch).run()
            return self._failed(commit_sha, target_branch, e, f"cherry-pick failed: {e.output.strip() or e}")

        if result.has_conflict:
            lifecycle.on_conflict(self.repo, target_branch).run()
            return BackportOutcome(
                status=OutcomeStatus.CONFLICT,
                target_branch=target_branch,
                original_sha=commit_sha,
                message="cherry-pick has conflicts",
                conflict_output=result.output,
            )

        try:
            if lifecycle.sign_commits:
                original_message = self.repo.commit_message("HEAD")
                self.repo.amend_message(f"{original_message}\n\n{signature_message(commit_sha)}")
            backport_sha = self.repo.current_commit_sha()
        except GitCommandError as e:
            lifecycle.on_failure(self.repo, target_branch).run()
            return self._failed(commit_sha, target_branch, e, f"failed to finalize commit: {e}")

        return BackportOutcome(
            status=OutcomeStatus.SUCCESS,
            target_branch=target_branch,
            original_sha=commit_sha,
            backport_sha=backport_sha,
            message="commit successfully backported",
        )

    @staticmethod
    def _failed(sha: str, target_branch: str, error: Exception, message: str) -> BackportOutcome:
        return BackportOutcome(
            status=OutcomeStatus.FAILED,
            target_branch=target_branch,
            original_sha=sha,
            message=message,
            error=error,
        )

    def record(self, outcome: BackportOutcome, message: str = "", pr_number: int | None = None) -> None:
        """Append a ledger entry for a SUCCESS outcome. Anything else is ignored."""
        if outcome.status is not OutcomeStatus.SUCCESS or outcome.dry_run:
            return
        record = HistoryRecord(
            original_sha=outcome.original_sha,
            backport_sha=outcome.backport_sha,
            target_branch=outcome.target_branch,
            message=message,
            pr_number=pr_number,
        )
        try:
            self.store.append(record)
        except OSError as e:
            # The commit already exists; losing the ledger entry must not undo it.
            logger.warning("Failed to record backport history: %s", e)

    # ------------------------------------------------------------------ #
    # Entry points                                                         #
    # ------------------------------------------------------------------ #

    def backport_commit(self, ref: str, target_branch: str, dry_run: bool = False) -> BackportOutcome:
        """Cherry-pick ``ref`` onto ``target_branch`` in the current checkout.

        Raises a PreconditionError subclass if ``ref`` does not resolve, the
        working tree is dirty or the target branch is missing. On conflict the
        checkout is left on the target branch mid-cherry-pick.
        """
        logger.debug("Backporting %s to %s", ref, target_branch)
        full_sha = self.repo.resolve_revision(ref)

        if self.repo.has_uncommitted_changes():
            raise DirtyWorkingTreeError()

        if not self.repo.branch_exists(target_branch):
            raise BranchNotFoundError(target_branch)

        try:
            original_branch = self.repo.current_branch()
        except GitCommandError:
            logger.warning("HEAD is detached; staying on %s after the backport.", target_branch)
            original_branch = None

        if dry_run:
            logger.info("dry-run mode, not making changes")
            return BackportOutcome(
                status=OutcomeStatus.SUCCESS,
                target_branch=target_branch,
                original_sha=full_sha,
                message="dry-run: would backport commit",
                dry_run=True,
            )

        original_message = self.repo.commit_message(full_sha)
        lifecycle = CurrentBranchLifecycle(original_branch)
        outcome = self.apply(full_sha, target_branch, lifecycle)

        if outcome.status is OutcomeStatus.SUCCESS:
            self.record(outcome, message=original_message)
            lifecycle.on_success(self.repo, target_branch).run()
            logger.debug("Commit %s backported as %s", full_sha, outcome.backport_sha)
        return outcome

    def backport_pull_request(self, pr_number: int, target_branch: str, dry_run: bool = False) -> BackportOutcome:
        """Backport the squash commit of a merged pull request."""
        pr = self.get_pull_request(pr_number)
        if not pr.is_squash_merge():
            raise NotSquashMergedError(pr_number)

        outcome = self.backport_commit(pr.merge_commit, target_branch, dry_run=dry_run)
        outcome.pr_number = pr_number

        if outcome.status is OutcomeStatus.SUCCESS and not outcome.dry_run:
            try:
                self.store.attach_pr_number(outcome.original_sha, pr_number)
            except OSError as e:
                logger.warning("Failed to record PR #%d in backport history: %s", pr_number, e)
        return outcome

    # ------------------------------------------------------------------ #
    # Forge helpers                                                        #
    # ------------------------------------------------------------------ #

    def _require_forge(self) -> BaseForge:
        if self.forge is None:
            raise ForgeNotConfiguredError()
        return self.forge

    def get_pull_request(self, pr_number: int) -> PullRequestInfo:
        logger.debug("Fetching PR #%d from %s/%s", pr_number, self.owner, self.repo_name)
        return self._require_forge().get_pull_request(self.owner, self.repo_name, pr_number)

    def recent_pull_requests(self, limit: int) -> list[PullRequestInfo]:
        return self._require_forge().list_recent_pull_requests(self.owner, self.repo_name, limit)
