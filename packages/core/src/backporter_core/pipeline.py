"""Automated multi-branch backporting for post-merge CI jobs.

After a pull request lands on the default branch, the pipeline reads the
pull-request number from the merge commit, checks for a backport label and
opens one backport pull request per configured target branch. Branches are
processed one at a time: they share the working tree.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping

from rich.console import Console
from rich.markup import escape

from backporter_core.branches import resolve_target_branches
from backporter_core.errors import (
    BackportError,
    ConfigError,
    ForgeError,
    ForgeNotConfiguredError,
    GitCommandError,
)
from backporter_core.git.repository import is_ci_environment
from backporter_core.lifecycle import DisposableBranchLifecycle
from backporter_core.models import BackportOutcome, OutcomeStatus
from backporter_core.version import GIT_URL

if TYPE_CHECKING:
    from backporter_core.engine import BackportEngine
    from backporter_core.forge.types import PullRequestInfo

logger = logging.getLogger(__name__)

MAX_BODY_LENGTH = 2000
TRUNCATION_MARKER = "\n\n... (truncated)"
_SUMMARY_WIDTH = 40

# Tried in order; the first match with a positive number wins.
PR_NUMBER_PATTERNS = [
    re.compile(r"\(#(\d+)\)"),  # squash merge: "feat: something (#123)"
    re.compile(r"Merge pull request #(\d+)"),  # GitHub merge commit
    re.compile(r"Merge branch.*#(\d+)"),
    re.compile(r"See merge request.*!(\d+)"),  # GitLab style
    re.compile(r"Reviewed-on:.*pull/(\d+)"),  # Forgejo / Gitea
]

CONVENTIONAL_PREFIX_RE = re.compile(
    r"^(feat|fix|docs|style|refactor|perf|test|build|ci|chore|revert)(\([^)]+\))?:\s"
)

# Committer identity applied in CI when git has none configured.
CI_IDENTITIES = {
    "github": ("github-actions[bot]", "41898282+github-actions[bot]@users.noreply.github.com"),
    "forgejo": ("forgejo-actions[bot]", "forgejo-actions[bot]@noreply.localhost"),
}


def parse_pr_number(message: str) -> int | None:
    """Extract a pull-request number from a merge or squash commit message."""
    for pattern in PR_NUMBER_PATTERNS:
        match = pattern.search(message)
        if not match:
            continue
        try:
            number = int(match.group(1))
        except ValueError:
            continue
        if number > 0:
            return number
    return None


def extract_conventional_prefix(title: str) -> str:
    """Return ``type`` or ``type(scope)`` from a conventional-commit title, or ""."""
    match = CONVENTIONAL_PREFIX_RE.match(title)
    if not match:
        return ""
    return match.group(1) + (match.group(2) or "")


def disposable_branch_name(pr_number: int, target_branch: str) -> str:
    return f"backport-{pr_number}-to-{target_branch}"


def ci_identity(forge_type: str | None, name: str | None = None, email: str | None = None) -> tuple[str, str]:
    default_name, default_email = CI_IDENTITIES.get(forge_type or "", CI_IDENTITIES["github"])
    return name or default_name, email or default_email


def format_backport_pr_body(pr: PullRequestInfo, target_branch: str, max_body_length: int = MAX_BODY_LENGTH) -> str:
    merged = pr.merged_at.strftime("%Y-%m-%d %H:%M:%S UTC") if pr.merged_at else "unknown"
    lines = [
        f"Backport of #{pr.number} to `{target_branch}`.",
        "",
        "## Original PR",
        "",
        f"- **Title**: {pr.title}",
        f"- **Author**: @{pr.author}",
        f"- **Merged**: {merged}",
    ]
    if pr.body:
        body = pr.body
        if len(body) > max_body_length:
            body = body[:max_body_length] + TRUNCATION_MARKER
        lines += ["", "## Original Description", "", body]
    lines += [
        "",
        "---",
        f"*This PR was automatically created by [backporter]({GIT_URL}) in CI mode.*",
        "",
    ]
    return "\n".join(lines)


@dataclass
class PipelineContext:
    """Everything one pipeline run needs besides the engine.

    ``identity`` is applied once per run, and only where git has none.
    """

    owner: str
    repo_name: str
    target_branches: list[str] = field(default_factory=list)
    remote: str = "origin"
    default_branch: str = "main"
    default_prefix: str = "fix"
    dry_run: bool = False
    identity: tuple[str, str] | None = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    environ: Mapping[str, str] | None = None


@dataclass
class PipelineReport:
    pr_number: int | None = None
    outcomes: list[BackportOutcome] = field(default_factory=list)
    reason: str = ""  # why nothing was attempted, for no-op runs
    cancelled: bool = False

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeStatus.SUCCESS)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded - self.skipped

    @property
    def ok(self) -> bool:
        return self.failed == 0


class CIPipeline:
    def __init__(self, engine: BackportEngine, context: PipelineContext):
        self.engine = engine
        self.context = context

    @property
    def repo(self):
        return self.engine.repo

    def run(self) -> PipelineReport:
        """Run the whole workflow.

        Raises before any branch is attempted (CI gate, missing forge, fetch
        failure, no target branches). Once fan-out starts, a failing branch
        never stops the others.
        """
        ctx = self.context
        if not is_ci_environment(ctx.environ):
            raise ConfigError("CI mode requires the CI environment variable to be set")
        forge = self.engine.forge
        if forge is None:
            raise ForgeNotConfiguredError()

        if ctx.identity and self.repo.configure_identity(*ctx.identity):
            logger.debug("Configured git identity %s <%s>", *ctx.identity)

        logger.debug("Fetching from %s", ctx.remote)
        self.repo.fetch(ctx.remote)

        remote_ref = f"{ctx.remote}/{ctx.default_branch}"
        commit_message = self.repo.commit_message(remote_ref)
        logger.debug("%s commit message: %s", remote_ref, commit_message)

        pr_number = parse_pr_number(commit_message)
        if pr_number is None:
            logger.info("No PR number found in commit message, skipping backport")
            return PipelineReport(reason="no pull request referenced by the latest commit")
        logger.info("Found PR #%d in commit", pr_number)

        pr = self.engine.get_pull_request(pr_number)
        logger.debug("PR labels: %s", sorted(pr.labels))
        if not pr.has_backport_label():
            logger.info("PR #%d does not have a backport label, skipping", pr_number)
            return PipelineReport(pr_number=pr_number, reason="no backport label")

        if not ctx.target_branches:
            raise ConfigError("No target branches configured in config file")
        target_branches = resolve_target_branches(self.repo.list_remote_branches(ctx.remote), ctx.target_branches)
        logger.info("Target branches: %s", ", ".join(target_branches) or "(none matched)")

        prefix = extract_conventional_prefix(pr.title)
        if not prefix:
            prefix = ctx.default_prefix
            logger.debug("Using default prefix %s", prefix)

        report = PipelineReport(pr_number=pr_number)
        for target_branch in target_branches:
            if ctx.cancel_event.is_set():
                logger.warning("Cancelled; %d branch(es) not attempted", len(target_branches) - len(report.outcomes))
                report.cancelled = True
                break
            try:
                outcome = self.process_branch(pr, target_branch, prefix)
            except BackportError as e:
                outcome = BackportOutcome(
                    status=OutcomeStatus.FAILED,
                    target_branch=target_branch,
                    original_sha=pr.merge_commit,
                    message=str(e),
                    error=e,
                )
            report.outcomes.append(outcome)
        return report

    def process_branch(self, pr: PullRequestInfo, target_branch: str, prefix: str) -> BackportOutcome:
        """Open one backport pull request for ``target_branch`` on a disposable branch."""
        ctx = self.context
        forge = self.engine.forge
        branch_name = disposable_branch_name(pr.number, target_branch)
        logger.info("Processing backport of #%d to %s via %s", pr.number, target_branch, branch_name)

        try:
            existing = forge.list_open_pull_requests(ctx.owner, ctx.repo_name, head=branch_name)
        except ForgeError as e:
            # Not fatal: a real problem resurfaces when pushing or creating the PR.
            logger.warning("Failed to check for an existing backport PR: %s", e)
            existing = []
        if existing:
            number = existing[0].number
            logger.info("Backport PR #%d already exists, skipping", number)
            return BackportOutcome(
                status=OutcomeStatus.SKIPPED,
                target_branch=target_branch,
                original_sha=pr.merge_commit,
                pr_number=number,
                message=f"backport PR #{number} already exists",
            )

        if ctx.dry_run:
            logger.info("dry-run: would create backport branch %s and PR", branch_name)
            return BackportOutcome(
                status=OutcomeStatus.SUCCESS,
                target_branch=target_branch,
                original_sha=pr.merge_commit,
                message="dry-run: would create backport PR",
                dry_run=True,
            )

        lifecycle = DisposableBranchLifecycle(branch_name, ctx.remote)
        outcome = self.engine.apply(pr.merge_commit, target_branch, lifecycle)
        if outcome.status is OutcomeStatus.CONFLICT:
            outcome.status = OutcomeStatus.FAILED
            outcome.error = BackportError("cherry-pick has conflicts")
            outcome.message = "cherry-pick has conflicts - manual backport required"
            return outcome
        if outcome.status is not OutcomeStatus.SUCCESS:
            return outcome

        logger.debug("Pushing %s to %s", branch_name, ctx.remote)
        try:
            self.repo.push(ctx.remote, branch_name)
        except GitCommandError as e:
            lifecycle.discard(self.repo, target_branch).run()
            return self._fail(outcome, e, f"failed to push: {e}")

        title = f"{prefix}: backport #{pr.number} to {target_branch}"
        body = format_backport_pr_body(pr, target_branch)
        logger.debug("Creating backport PR %r", title)
        try:
            new_number = forge.create_pull_request(
                ctx.owner, ctx.repo_name, title=title, body=body, head=branch_name, base=target_branch
            )
        except ForgeError as e:
            # The pushed branch stays: deleting a remote ref is not automated.
            return self._fail(outcome, e, f"failed to create PR: {e}")

        lifecycle.on_success(self.repo, target_branch).run()
        self.engine.record(outcome, message=pr.title, pr_number=pr.number)

        outcome.pr_number = new_number
        outcome.message = f"created backport PR #{new_number}"
        logger.info("Backport PR #%d created for %s", new_number, target_branch)
        return outcome

    @staticmethod
    def _fail(outcome: BackportOutcome, error: Exception, message: str) -> BackportOutcome:
        outcome.status = OutcomeStatus.FAILED
        outcome.error = error
        outcome.message = message
        return outcome


def render_summary(report: PipelineReport, console: Console) -> None:
    """Print the per-branch status lines and totals."""
    _status_style = {
        OutcomeStatus.SUCCESS: ("✓  SUCCESS", "green"),
        OutcomeStatus.SKIPPED: ("⏭  SKIPPED", "yellow"),
        OutcomeStatus.FAILED: ("✗  FAILED", "red"),
        OutcomeStatus.CONFLICT: ("✗  FAILED", "red"),
    }
    console.print()
    console.print(f"[bold]Backport Summary for PR #{report.pr_number}[/bold]")
    console.print("=" * _SUMMARY_WIDTH)
    for outcome in report.outcomes:
        label, style = _status_style[outcome.status]
        line = f"[{style}]{label}[/{style}]  {escape(outcome.target_branch)}"
        if outcome.pr_number:
            line += f" → PR #{outcome.pr_number}"
        if outcome.status in (OutcomeStatus.FAILED, OutcomeStatus.CONFLICT):
            line += f" ({escape(outcome.message)})"
        console.print(line, highlight=False)
    if report.cancelled:
        console.print("[yellow]Cancelled before all branches were attempted.[/yellow]")
    console.print("-" * _SUMMARY_WIDTH)
    console.print(f"Total: {report.succeeded} succeeded, {report.failed} failed, {report.skipped} skipped")
    console.print()
