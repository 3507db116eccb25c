"""Terminal rendering of backport outcomes."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable

import click
from rich.console import Console
from rich.markup import escape

from backporter_core.errors import BackportError
from backporter_core.git.repository import is_ci_environment
from backporter_core.models import BackportOutcome, OutcomeStatus

logger = logging.getLogger(__name__)

console = Console()

_SHORT_SHA = 8


@contextmanager
def backport_errors():
    """Turn library errors into a clean ``Error: ...`` line and exit code 1."""
    try:
        yield
    except BackportError as e:
        raise click.ClickException(str(e)) from e


def _print_conflict(outcome: BackportOutcome) -> None:
    console.print()
    console.print(f"[red]✗ Cherry-pick onto {escape(outcome.target_branch)} resulted in conflicts[/red]")
    console.print()
    console.print("To resolve:")
    console.print("  1. Fix the conflicts in the affected files")
    console.print("  2. Run: [bold]git cherry-pick --continue[/bold]")
    console.print()
    console.print("To abort:")
    console.print("  Run: [bold]git cherry-pick --abort[/bold]")
    console.print()
    console.print("Conflict details:")
    console.print(outcome.conflict_output, markup=False, highlight=False)


def report_outcome(outcome: BackportOutcome, ci: bool = False) -> bool:
    """Print one outcome. Returns False if the run should count as failed."""
    target = escape(outcome.target_branch)

    if outcome.status is OutcomeStatus.CONFLICT:
        if ci:
            logger.error("Cherry-pick onto %s has conflicts in CI mode", outcome.target_branch)
        else:
            _print_conflict(outcome)
        return False

    if outcome.status is OutcomeStatus.FAILED:
        console.print(f"[red]✗ Backport to {target} failed:[/red] {escape(outcome.message)}")
        return False

    if outcome.dry_run:
        console.print(f"[dim]dry-run: would backport {outcome.original_sha[:_SHORT_SHA]} to {target}[/dim]")
        return True

    console.print()
    if outcome.pr_number:
        console.print(f"[green]✓ Successfully backported PR #{outcome.pr_number} to {target}[/green]")
    else:
        console.print(
            f"[green]✓ Successfully backported commit {outcome.original_sha[:_SHORT_SHA]} to {target}[/green]"
        )
    console.print(f"  New commit: {outcome.backport_sha[:_SHORT_SHA]}")
    return True


def run_for_targets(targets: list[str], backport: Callable[[str], BackportOutcome]) -> None:
    """Attempt ``backport`` on each target and report every result.

    A failure moves on to the next target. A conflict stops the loop: the
    working tree is left mid-cherry-pick for the user. Raises
    ``click.ClickException`` at the end if anything did not succeed.
    """
    ci = is_ci_environment()
    failed: list[str] = []
    not_attempted: list[str] = []
    conflicted = False

    for index, target in enumerate(targets):
        logger.info("Backporting to %s", target)
        try:
            outcome = backport(target)
        except BackportError as e:
            console.print(f"[red]✗ Backport to {escape(target)} failed:[/red] {escape(str(e))}")
            failed.append(target)
            continue

        if not report_outcome(outcome, ci=ci):
            failed.append(target)
            if outcome.has_conflict:
                conflicted = True
                not_attempted = targets[index + 1 :]
                break

    if conflicted:
        if ci:
            raise click.ClickException("cherry-pick conflicts detected in CI mode")
        if not_attempted:
            console.print(f"[yellow]Not attempted: {escape(', '.join(not_attempted))}[/yellow]")
        raise click.ClickException("cherry-pick conflicts need resolution")
    if failed:
        raise click.ClickException(f"backport failed for: {', '.join(failed)}")
