"""JsonFileStore: the default persistent ledger.

Data format: a single JSON file holding an array of HistoryRecord dicts in
insertion order. The file is read once at construction and rewritten in
full after every mutation. A missing file is an empty ledger.

Concurrent writers are not coordinated: one backporter invocation per
history file at a time.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from backporter_store.memory import MemoryStore
from backporter_store.models import HistoryRecord

logger = logging.getLogger(__name__)


class JsonFileStore(MemoryStore):
    """Stores backport history in a local JSON file."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        super().__init__(self._load())

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[HistoryRecord]:
        if not self._path.exists():
            return []
        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        data = json.loads(text)
        if not isinstance(data, list):
            raise ValueError(f"History file {self._path} does not contain a JSON array.")
        return [HistoryRecord.from_dict(d) for d in data]

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.to_dict() for r in self._records]
        self._path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        logger.debug("Wrote %d history record(s) to %s", len(payload), self._path)
