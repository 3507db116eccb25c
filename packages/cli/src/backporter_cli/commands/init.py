"""init command: interactive setup wizard.

Writes .backporter.yaml (or the global config), offers to create missing
target branches, and can generate the CI workflow that runs `backporter ci`
after every merge.
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from backporter_core.branches import missing_target_branches
from backporter_core.config import REPO_CONFIG_PATH, global_config_path, save_config
from backporter_core.errors import GitCommandError
from backporter_core.git.repository import GitRepository
from backporter_core.version import __version__

console = Console()

_WORKFLOW_TEMPLATE = """\
name: Backport

on:
  push:
    branches: [{default_branch}]

jobs:
  backport:
    runs-on: {runs_on}
    permissions:
      contents: write
      pull-requests: write

    steps:
      - uses: actions/checkout@v4
        with:
          fetch-depth: 0

      - name: Set up Python
        uses: actions/setup-python@v5
        with:
          python-version: "3.12"

      - name: Install backporter
        run: pip install "{requirement}"

      - name: Open backport pull requests
        env:
          {token_env}: ${{{{ secrets.{token_secret} }}}}
        run: backporter ci
"""

_WORKFLOW_PATHS = {
    "github": Path(".github/workflows/backporter.yml"),
    "forgejo": Path(".forgejo/workflows/backporter.yml"),
}


@click.command("init")
@click.option(
    "--global",
    "use_global",
    is_flag=True,
    help="Write the user-wide config (~/.config/backporter/config.yaml) instead of .backporter.yaml.",
)
def init_cmd(use_global: bool):
    """Set up backporter for this repository.

    Asks for the forge, the target branches and the commit prefix used for
    backport PR titles, then writes the config file.
    """
    console.print("\n[bold cyan]backporter init[/bold cyan] - setup wizard\n")

    forge_type = click.prompt(
        "Forge type",
        type=click.Choice(["github", "forgejo", "none"]),
        default="github",
    )
    config: dict = {"forge_type": None if forge_type == "none" else forge_type}

    if forge_type == "forgejo":
        config["forgejo_url"] = click.prompt("Forgejo instance URL (e.g. https://codeberg.org)")
        console.print("\n[yellow]Note:[/yellow] set [bold]FORGEJO_TOKEN[/bold] with repository read/write scope.")
    elif forge_type == "github":
        console.print(
            "\n[yellow]Note:[/yellow] set [bold]GITHUB_TOKEN[/bold] or run [bold]gh auth login[/bold]. "
            "The token needs the [bold]repo[/bold] scope for private repositories."
        )

    config["default_branch"] = click.prompt("Default branch", default="main")
    config["remote"] = click.prompt("Git remote", default="origin")

    raw_targets = click.prompt(
        "Target branches (comma-separated names or regular expressions)", default="", show_default=False
    )
    targets = [t.strip() for t in raw_targets.split(",") if t.strip()]
    config["target_branches"] = targets

    config["ci"] = {"default_prefix": click.prompt("Commit prefix for backport PRs without one", default="fix")}
    config["history"] = {"enabled": click.confirm("Keep a local history of backports?", default=True)}

    path = global_config_path() if use_global else Path(REPO_CONFIG_PATH)
    save_config(config, str(path))
    console.print(f"[green]Configuration saved to {path}[/green]")

    if targets:
        _offer_branch_creation(targets, config["default_branch"])

    if config["forge_type"] and not use_global:
        workflow_path = _WORKFLOW_PATHS[config["forge_type"]]
        if click.confirm(f"\nGenerate {workflow_path}?", default=True):
            _write_workflow(workflow_path, config["forge_type"], config["default_branch"])
            console.print(f"[green]Created {workflow_path}[/green]")

    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Backport a pull request with: [bold]backporter pr <number>[/bold]")


def _offer_branch_creation(targets: list[str], default_branch: str) -> None:
    """Create literal target branches that do not exist yet, from a chosen base."""
    repo = GitRepository()
    try:
        existing = repo.list_branches()
    except GitCommandError:
        console.print("[yellow]Not a git repository, skipping branch check.[/yellow]")
        return

    missing = missing_target_branches(existing, targets)
    if not missing:
        return

    console.print(f"\nThese target branches do not exist locally: [bold]{', '.join(missing)}[/bold]")
    if not existing or not click.confirm("Create them now?", default=False):
        return

    base = click.prompt(
        "Base branch for new branches",
        type=click.Choice(existing),
        default=default_branch if default_branch in existing else existing[0],
    )
    for name in missing:
        try:
            repo.create_branch(name, base)
        except GitCommandError as e:
            raise click.ClickException(f"Failed to create branch {name}: {e}") from e
    console.print(f"[green]Created {len(missing)} branch(es) from {base}[/green]")


def _write_workflow(path: Path, forge_type: str, default_branch: str) -> None:
    if forge_type == "forgejo":
        runs_on, token_env, token_secret = "docker", "FORGEJO_TOKEN", "FORGEJO_TOKEN"
    else:
        runs_on, token_env, token_secret = "ubuntu-latest", "GITHUB_TOKEN", "GITHUB_TOKEN"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        _WORKFLOW_TEMPLATE.format(
            default_branch=default_branch,
            runs_on=runs_on,
            requirement="backporter" if __version__ == "dev" else f"backporter=={__version__}",
            token_env=token_env,
            token_secret=token_secret,
        )
    )
