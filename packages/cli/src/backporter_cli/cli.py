"""CLI entry point for backporter.

Commands:
  commit   backport a commit to one or more branches
  pr       backport a squash-merged pull request
  ci       open backport PRs for the latest merge (CI only)
  list     show the local backport history
  recent   list recently merged pull requests
  init     interactive setup wizard
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from backporter_cli.commands.ci import ci_cmd
from backporter_cli.commands.commit import commit_cmd
from backporter_cli.commands.history import list_cmd, recent_cmd
from backporter_cli.commands.init import init_cmd
from backporter_cli.commands.pr import pr_cmd
from backporter_core.version import __version__

_LOG_LEVELS = ["debug", "info", "warning", "error"]


def _configure_logging(level: str) -> None:
    """Route library logging through rich on stderr. Installed once per process."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=Console(stderr=True), show_path=False, markup=False))


def _build_store(config: dict):
    """Instantiate the history store from the `history:` config section.

    Store selection:
      enabled: false  → NoOpStore   (nothing recorded)
      path: ":memory:" → MemoryStore (recorded for this process only)
      (default)       → JsonFileStore at `path` or ~/.cache/backporter/history.json

    This factory lives in cli.py so neither backporter_core nor
    backporter_store know about the config format.
    """
    from backporter_core.config import default_history_path
    from backporter_store.noop import NoOpStore

    history = config.get("history") or {}
    if not history.get("enabled", True):
        return NoOpStore()

    path = history.get("path")
    if path == ":memory:":
        from backporter_store.memory import MemoryStore

        return MemoryStore()

    from backporter_store.json_file import JsonFileStore

    try:
        return JsonFileStore(path or default_history_path())
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Failed to load backport history: {e}") from e


@click.group()
@click.version_option(version=__version__, prog_name="backporter")
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to an extra configuration file, applied after .backporter.yaml.",
    envvar="BACKPORTER_CONFIG",
)
@click.option("--remote", default=None, help="Git remote name. Overrides config file.", envvar="BACKPORTER_REMOTE")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="info",
    show_default=True,
    help="Logging verbosity.",
    envvar="BACKPORTER_LOG_LEVEL",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None, remote: str | None, log_level: str):
    """Backport commits and pull requests to release branches."""
    from backporter_core.config import load_config
    from backporter_core.errors import ConfigError

    _configure_logging(log_level)
    logging.getLogger(__name__).debug("backporter %s starting", __version__)

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path, cli_overrides={"remote": remote})
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(commit_cmd)
main.add_command(pr_cmd)
main.add_command(ci_cmd)
main.add_command(list_cmd)
main.add_command(recent_cmd)
main.add_command(init_cmd)
