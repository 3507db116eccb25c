"""No-op store, used when history is disabled in the configuration.

Using a NoOpStore rather than None lets the engine always call
store.append() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from backporter_store.base import BaseStore

if TYPE_CHECKING:
    from backporter_store.models import HistoryRecord


class NoOpStore(BaseStore):
    """Silently discards all records."""

    def append(self, record: HistoryRecord) -> None:
        pass  # intentional no-op

    def list_records(self) -> list[HistoryRecord]:
        return []

    def clear(self) -> None:
        pass

    def _replace(self, index: int, record: HistoryRecord) -> None:
        pass
