"""In-memory ledger, lost when the process exits."""

from __future__ import annotations

from typing import TYPE_CHECKING

from backporter_store.base import BaseStore

if TYPE_CHECKING:
    from backporter_store.models import HistoryRecord


class MemoryStore(BaseStore):
    def __init__(self, records: list[HistoryRecord] | None = None):
        self._records: list[HistoryRecord] = list(records or [])

    def append(self, record: HistoryRecord) -> None:
        self._records.append(record)
        self._flush()

    def list_records(self) -> list[HistoryRecord]:
        return list(self._records)

    def clear(self) -> None:
        self._records = []
        self._flush()

    def _replace(self, index: int, record: HistoryRecord) -> None:
        self._records[index] = record
        self._flush()

    def _flush(self) -> None:
        """Hook for persistent subclasses; called after every mutation."""
