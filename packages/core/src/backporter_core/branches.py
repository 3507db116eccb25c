"""Target branch specifications: literal names and regular expressions."""

from __future__ import annotations

import re

_REGEX_CHARS = set("*+?.[](){}|^$\\")


def is_branch_pattern(spec: str) -> bool:
    """Return True if ``spec`` contains regex metacharacters.

    Patterns are never created as branches; only literal names are. Note that
    a dotted release name such as ``v4.4.x`` counts as a pattern here, and is
    matched against existing branches by ``resolve_target_branches``.
    """
    return any(c in _REGEX_CHARS for c in spec)


def missing_target_branches(existing: list[str], targets: list[str]) -> list[str]:
    """Literal targets that do not exist locally, in configured order."""
    known = set(existing)
    return [t for t in targets if not is_branch_pattern(t) and t not in known]


def resolve_target_branches(existing: list[str], targets: list[str]) -> list[str]:
    """Expand configured targets into concrete branch names.

    Literal names are kept even if missing (the engine reports them); a
    pattern matches an existing branch by exact name or full regex match.
    An invalid regex is treated as a literal.
    """
    resolved: list[str] = []
    for target in targets:
        if not is_branch_pattern(target):
            candidates = [target]
        else:
            try:
                regex = re.compile(target)
            except re.error:
                candidates = [target]
            else:
                candidates = [b for b in existing if b == target or regex.fullmatch(b)]
        for name in candidates:
            if name not in resolved:
                resolved.append(name)
    return resolved


def order_branches(branches: list[str], targets: list[str]) -> list[str]:
    """Return ``branches`` with exact configured targets first."""
    wanted = set(targets)
    return [b for b in branches if b in wanted] + [b for b in branches if b not in wanted]
