"""Ordered best-effort cleanup.

When a backport attempt fails part-way, the working tree is restored by a
fixed sequence of undo steps (abort the cherry-pick, return to a branch,
delete the scratch branch). Each step runs even if an earlier one failed;
failures are logged and reported, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class CompensationFailure:
    name: str
    error: Exception


@dataclass
class CompensationChain:
    actions: list[tuple[str, Callable[[], object]]] = field(default_factory=list)

    def add(self, name: str, action: Callable[[], object]) -> CompensationChain:
        self.actions.append((name, action))
        return self

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.actions]

    def run(self) -> list[CompensationFailure]:
        failures: list[CompensationFailure] = []
        for name, action in self.actions:
            try:
                action()
            except Exception as e:
                logger.warning("Cleanup step %r failed (%s): %s", name, type(e).__name__, e)
                failures.append(CompensationFailure(name, e))
        return failures
