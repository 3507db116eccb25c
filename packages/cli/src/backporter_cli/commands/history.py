"""list command: display the backport history ledger."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()

_SHA_WIDTH = 12


@click.command("list")
@click.option("--clear", is_flag=True, help="Delete every history record.")
@click.option("--pr", "pr_number", type=int, default=None, help="Only show backports of this PR number.")
@click.option("--sha", default=None, help="Only show backports of this original commit (prefix allowed).")
@click.option("--limit", default=50, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def list_cmd(ctx, clear: bool, pr_number: int | None, sha: str | None, limit: int):
    """Show commits and PRs backported from this machine.

    Reads the history file configured under `history:` in .backporter.yaml.
    """
    from backporter_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None or isinstance(store, NoOpStore):
        raise click.UsageError("History is disabled. Set 'history: {enabled: true}' in .backporter.yaml.")

    if clear:
        store.clear()
        console.print("History cleared")
        return

    if pr_number is not None:
        records = store.find_by_pr_number(pr_number)
    else:
        records = store.list_records()
    if sha:
        records = [r for r in records if r.original_sha.startswith(sha)]

    if not records:
        console.print("[yellow]No backports found in history.[/yellow]")
        return

    # Most recent first, capped at --limit.
    records = list(reversed(records))[:limit]

    table = Table(title="Backport History", show_header=True, header_style="bold cyan")
    table.add_column("Original", width=_SHA_WIDTH)
    table.add_column("Backport", width=_SHA_WIDTH)
    table.add_column("Branch", style="bold")
    table.add_column("PR", width=8)
    table.add_column("Message", max_width=40)
    table.add_column("Backported At", width=16)

    for r in records:
        table.add_row(
            r.original_sha[:_SHA_WIDTH],
            r.backport_sha[:_SHA_WIDTH],
            escape(r.target_branch),
            f"#{r.pr_number}" if r.pr_number else "-",
            escape(r.message.splitlines()[0][:40]) if r.message else "",
            r.timestamp[:16].replace("T", " "),
        )

    console.print(table)


@click.command("recent")
@click.option("--limit", type=int, default=None, help="Number of PRs to show. Defaults to recent_pr_count.")
@click.pass_context
def recent_cmd(ctx, limit: int | None):
    """List recently merged pull requests on the configured forge."""
    from backporter_cli.output import backport_errors
    from backporter_cli.service import build_engine

    config = ctx.obj["config"]
    with backport_errors():
        engine = build_engine(config, ctx.obj["store"])
        prs = engine.recent_pull_requests(limit or config.get("recent_pr_count") or 10)

    if not prs:
        console.print("[yellow]No recently merged pull requests found.[/yellow]")
        return

    table = Table(title=f"Recently merged - {engine.owner}/{engine.repo_name}", header_style="bold cyan")
    table.add_column("PR", style="bold", width=6)
    table.add_column("Title", max_width=50)
    table.add_column("Author")
    table.add_column("Merged At", width=16)

    for pr in prs:
        table.add_row(
            f"#{pr.number}",
            escape(pr.title),
            escape(pr.author),
            pr.merged_at.strftime("%Y-%m-%d %H:%M") if pr.merged_at else "",
        )

    console.print(table)
