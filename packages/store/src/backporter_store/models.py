"""Backport history data models.

Decoupled from backporter_core so the store layer can be used independently
and the engine has no knowledge of how records are persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone


@dataclass(frozen=True)
class HistoryRecord:
    """A completed backport persisted to the ledger.

    Appended by the engine only when a cherry-pick reached a successful,
    signed commit. Records are immutable; attaching a pull-request number
    produces a replacement via ``with_pr_number``.
    """

    original_sha: str
    backport_sha: str
    target_branch: str
    message: str = ""
    pr_number: int | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())  # ISO-8601 UTC

    def with_pr_number(self, pr_number: int) -> HistoryRecord:
        return replace(self, pr_number=pr_number)

    def to_dict(self) -> dict:
        return {
            "original_sha": self.original_sha,
            "backport_sha": self.backport_sha,
            "target_branch": self.target_branch,
            "pr_number": self.pr_number,
            "timestamp": self.timestamp,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, d: dict) -> HistoryRecord:
        return cls(
            original_sha=d.get("original_sha", ""),
            backport_sha=d.get("backport_sha", ""),
            target_branch=d.get("target_branch", ""),
            pr_number=d.get("pr_number") or None,
            timestamp=d.get("timestamp", ""),
            message=d.get("message", ""),
        )
