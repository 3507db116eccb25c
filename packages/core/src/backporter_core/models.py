"""Outcome types returned by the engine and the CI pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class OutcomeStatus(enum.Enum):
    SUCCESS = "success"
    CONFLICT = "conflict"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class BackportOutcome:
    """Result of one backport attempt against one target branch.

    ``backport_sha`` is set on SUCCESS outside dry-run mode. ``pr_number`` is
    the original pull request for engine runs and the created (or already
    existing) backport pull request for pipeline runs. ``error`` is set only
    for FAILED outcomes.
    """

    status: OutcomeStatus
    target_branch: str
    original_sha: str = ""
    backport_sha: str = ""
    pr_number: int | None = None
    message: str = ""
    error: Exception | None = None
    conflict_output: str = ""
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        """True for outcomes that do not fail a run (SUCCESS and SKIPPED)."""
        return self.status in (OutcomeStatus.SUCCESS, OutcomeStatus.SKIPPED)

    @property
    def has_conflict(self) -> bool:
        return self.status is OutcomeStatus.CONFLICT or bool(self.conflict_output)
