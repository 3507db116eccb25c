from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

BACKPORT_LABEL = "backport"


@dataclass(frozen=True)
class PullRequestInfo:
    """Snapshot of a merged pull request, fetched once per operation."""

    number: int
    title: str = ""
    body: str = ""
    state: str = ""
    merge_commit: str = ""
    head_sha: str = ""
    head_branch: str = ""
    base_branch: str = ""
    merged: bool = False
    squashed: bool = False  # merge commit has exactly one parent
    author: str = ""
    merged_at: datetime | None = None
    labels: frozenset[str] = field(default_factory=frozenset)

    def is_squash_merge(self) -> bool:
        return self.squashed

    def has_backport_label(self) -> bool:
        """True if any label contains "backport", case-insensitively."""
        return any(BACKPORT_LABEL in label.lower() for label in self.labels)


@dataclass(frozen=True)
class CommitInfo:
    sha: str
    message: str = ""
    author: str = ""
    email: str = ""
    timestamp: datetime | None = None
    parents: tuple[str, ...] = ()
