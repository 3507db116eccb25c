"""Wiring of the git adapter, the forge adapter and the store into an engine."""

from __future__ import annotations

import logging

import click
from rich.markup import escape

from backporter_cli.output import console
from backporter_core.branches import order_branches, resolve_target_branches
from backporter_core.engine import BackportEngine
from backporter_core.errors import ConfigError, GitCommandError
from backporter_core.forge import create_forge
from backporter_core.git.repository import GitRepository, parse_remote_url

logger = logging.getLogger(__name__)


def build_engine(config: dict, store, path: str = ".") -> BackportEngine:
    """Create an engine for the checkout at ``path``.

    Owner and repository name come from the configured remote's URL. An
    unparseable URL is only fatal when a forge is configured; a forge that
    cannot be created is logged and left out, so commit backports still work.
    """
    from backporter_cli.auth import resolve_forge_token

    repo = GitRepository(path)
    remote = config.get("remote") or "origin"
    forge_type = config.get("forge_type")

    owner = repo_name = ""
    try:
        owner, repo_name = parse_remote_url(repo.remote_url(remote))
        logger.debug("Parsed repository info: %s/%s", owner, repo_name)
    except (GitCommandError, ValueError) as e:
        if forge_type:
            raise ConfigError(f"Failed to determine repository from remote {remote!r}: {e}") from e
        logger.debug("Could not parse remote %s: %s", remote, e)

    forge = None
    if forge_type:
        try:
            forge = create_forge(forge_type, token=resolve_forge_token(config), forgejo_url=config.get("forgejo_url"))
            logger.debug("%s forge client created", forge.name)
        except ConfigError as e:
            logger.warning("Failed to create forge client: %s", e)

    return BackportEngine(repo, forge=forge, store=store, owner=owner, repo_name=repo_name)


def select_target_branches(engine: BackportEngine, config: dict, target: str | None, usage: str) -> list[str]:
    """Return the branches a manual backport should be attempted on.

    An explicit ``target`` wins. Otherwise configured targets are used,
    with patterns expanded against local branches.
    """
    if target:
        return [target]

    configured = config.get("target_branches") or []
    if not configured:
        raise click.UsageError(f"{usage}\n(or configure target_branches in .backporter.yaml)")

    branches = resolve_target_branches(engine.repo.list_branches(), configured)
    if not branches:
        raise click.ClickException(f"No local branch matches the configured target branches: {', '.join(configured)}")
    return branches


def prompt_target_branch(engine: BackportEngine, config: dict) -> str:
    """Ask for a single target branch. Configured targets are listed first, starred."""
    configured = config.get("target_branches") or []
    branches = order_branches(engine.repo.list_branches(), configured)
    if not branches:
        raise click.ClickException("No local branches to backport to.")

    wanted = set(configured)
    console.print("\nLocal branches (★ configured target):")
    for name in branches:
        marker = "★" if name in wanted else " "
        console.print(f"  {marker} {escape(name)}", highlight=False)
    return click.prompt("Target branch", type=click.Choice(branches), default=branches[0], show_choices=False)
