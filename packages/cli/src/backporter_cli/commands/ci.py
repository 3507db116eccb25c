"""ci command: open backport pull requests after a merge to the default branch."""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager

import click
from rich.console import Console
from rich.markup import escape

from backporter_cli.output import backport_errors
from backporter_cli.service import build_engine
from backporter_core.pipeline import CIPipeline, PipelineContext, ci_identity, render_summary

logger = logging.getLogger(__name__)

console = Console()


@contextmanager
def _cancel_on_signals(cancel_event: threading.Event):
    """Set ``cancel_event`` on SIGINT/SIGTERM; the branch in progress finishes first."""

    def handler(signum, frame):
        logger.warning("Received %s, stopping after the current branch", signal.Signals(signum).name)
        cancel_event.set()

    if threading.current_thread() is not threading.main_thread():
        # Signal handlers can only be installed from the main thread.
        yield
        return

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


def _pipeline_context(engine, config: dict, dry_run: bool) -> PipelineContext:
    return PipelineContext(
        owner=engine.owner,
        repo_name=engine.repo_name,
        target_branches=list(config.get("target_branches") or []),
        remote=config.get("remote") or "origin",
        default_branch=config.get("default_branch") or "main",
        default_prefix=config["ci"].get("default_prefix") or "fix",
        dry_run=dry_run,
        identity=ci_identity(config.get("forge_type"), config.get("author_name"), config.get("author_email")),
    )


@click.command("ci")
@click.option("--dry-run", is_flag=True, help="Show what would be done without pushing or opening PRs.")
@click.pass_context
def ci_cmd(ctx, dry_run: bool):
    """Backport the latest merged PR to every configured target branch.

    Runs only in CI (CI or GITHUB_ACTIONS set). Reads the PR number from the
    newest commit on the default branch and, if the PR carries a backport
    label, opens one backport PR per target branch. A failing branch never
    stops the others; the exit code is 1 if any branch failed.
    """
    config = ctx.obj["config"]
    with backport_errors():
        engine = build_engine(config, ctx.obj["store"])
        context = _pipeline_context(engine, config, dry_run)
        with _cancel_on_signals(context.cancel_event):
            report = CIPipeline(engine, context).run()

    if report.reason:
        console.print(f"Nothing to backport: {escape(report.reason)}")
        return

    render_summary(report, console)
    if report.cancelled:
        raise click.ClickException("cancelled before all branches were attempted")
    if not report.ok:
        raise click.ClickException(f"{report.failed} backport(s) failed")
