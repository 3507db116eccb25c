"""pr command: backport the squash commit of a merged pull request."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.markup import escape

from backporter_cli.output import backport_errors, run_for_targets
from backporter_cli.service import build_engine, prompt_target_branch, select_target_branches
from backporter_core.errors import ForgeError

logger = logging.getLogger(__name__)

console = Console()

_MAX_LABEL = 80


def _prompt_pr_number(engine, limit: int) -> int | None:
    """List recently merged pull requests and ask which one to backport.

    Falls back to plain number entry when the forge cannot list them.
    """
    try:
        prs = engine.recent_pull_requests(limit)
    except ForgeError as e:
        logger.warning("Failed to fetch recent PRs: %s", e)
        return click.prompt("Enter the pull request number", type=int)

    if not prs:
        console.print("[yellow]No recently merged pull requests found.[/yellow]")
        return None

    console.print("\nRecently merged pull requests:")
    for pr in prs:
        label = f"#{pr.number} - {pr.title} ({pr.author})"
        if len(label) > _MAX_LABEL:
            label = label[: _MAX_LABEL - 3] + "..."
        console.print(f"  {escape(label)}", highlight=False)
    return click.prompt("\nEnter the pull request number", type=int)


@click.command("pr")
@click.argument("number", type=int, required=False)
@click.argument("target", required=False)
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes.")
@click.pass_context
def pr_cmd(ctx, number: int | None, target: str | None, dry_run: bool):
    """Backport pull request NUMBER to TARGET.

    The pull request must have been squash merged. Omit NUMBER to pick from
    recently merged pull requests and a target branch; omit only TARGET to
    use the configured target branches.

    \b
    Required environment variables:
      GITHUB_TOKEN     for forge_type: github (or use gh CLI)
      FORGEJO_TOKEN    for forge_type: forgejo
    """
    config = ctx.obj["config"]
    with backport_errors():
        engine = build_engine(config, ctx.obj["store"])
        if number is None:
            number = _prompt_pr_number(engine, config.get("recent_pr_count") or 10)
            if number is None:
                return
            targets = [target or prompt_target_branch(engine, config)]
        else:
            targets = select_target_branches(engine, config, target, "usage: backporter pr NUMBER TARGET")

    run_for_targets(targets, lambda branch: engine.backport_pull_request(number, branch, dry_run=dry_run))
