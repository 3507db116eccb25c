"""commit command: cherry-pick one commit onto target branches."""

from __future__ import annotations

import click

from backporter_cli.output import backport_errors, run_for_targets
from backporter_cli.service import build_engine, prompt_target_branch, select_target_branches
from backporter_core.git.repository import looks_like_sha


def _commit_sha(value: str) -> str:
    value = value.strip()
    if not looks_like_sha(value):
        raise click.BadParameter(f"{value!r} does not look like a commit SHA (7-40 hex characters)")
    return value


@click.command("commit")
@click.argument("sha", required=False)
@click.argument("target", required=False)
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes.")
@click.pass_context
def commit_cmd(ctx, sha: str | None, target: str | None, dry_run: bool):
    """Backport commit SHA to TARGET.

    SHA may be any revision git can resolve. Omit it to be prompted for a
    commit hash and a target branch. Without TARGET, every configured target
    branch is tried in turn. The backported commit is signed with a
    Backported-from trailer. On conflict the checkout is left on the target
    branch for you to resolve.
    """
    config = ctx.obj["config"]
    with backport_errors():
        engine = build_engine(config, ctx.obj["store"])
        if sha is None:
            sha = click.prompt("Enter the commit SHA to backport", value_proc=_commit_sha)
            targets = [target or prompt_target_branch(engine, config)]
        else:
            targets = select_target_branches(engine, config, target, "usage: backporter commit SHA TARGET")

    run_for_targets(targets, lambda branch: engine.backport_commit(sha, branch, dry_run=dry_run))
