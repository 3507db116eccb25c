"""Abstract history store interface.

The engine depends on BaseStore, not on a concrete backend, so the JSON
file, in-memory and no-op ledgers are swappable without touching it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from backporter_store.models import HistoryRecord


class BaseStore(ABC):
    """Append-only ledger of completed backports.

    Queries are answered from the full record list, so subclasses only
    need to implement appending, listing, replacing and clearing.
    """

    @abstractmethod
    def append(self, record: HistoryRecord) -> None:
        """Persist one completed backport."""

    @abstractmethod
    def list_records(self) -> list[HistoryRecord]:
        """Return every record in insertion order. Never raises for an empty ledger."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all records."""

    @abstractmethod
    def _replace(self, index: int, record: HistoryRecord) -> None:
        """Swap the record at ``index`` for ``record`` and persist."""

    def find_by_original_sha(self, sha: str) -> list[HistoryRecord]:
        return [r for r in self.list_records() if r.original_sha == sha]

    def find_by_pr_number(self, pr_number: int) -> list[HistoryRecord]:
        return [r for r in self.list_records() if r.pr_number == pr_number]

    def attach_pr_number(self, original_sha: str, pr_number: int) -> bool:
        """Set the pull-request number on the latest record for ``original_sha``.

        Returns False when no record for that hash exists.
        """
        records = self.list_records()
        for index in range(len(records) - 1, -1, -1):
            if records[index].original_sha == original_sha:
                self._replace(index, records[index].with_pr_number(pr_number))
                return True
        return False

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
