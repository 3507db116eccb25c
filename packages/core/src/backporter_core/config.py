import copy
import logging
import os
from pathlib import Path
from typing import Optional

import yaml

from backporter_core.errors import ConfigError

logger = logging.getLogger(__name__)

SUPPORTED_FORGES = ("github", "forgejo")

DEFAULT_CONFIG: dict = {
    "forge_type": None,  # "github" | "forgejo"; None disables pull-request features
    "forgejo_url": None,
    "target_branches": [],  # literal names or regular expressions
    "default_branch": "main",
    "remote": "origin",
    "recent_pr_count": 10,
    "author_name": None,  # committer identity applied in CI when git has none
    "author_email": None,
    "history": {
        "enabled": True,
        "path": None,  # None = ~/.cache/backporter/history.json; ":memory:" = not persisted
    },
    "ci": {
        "default_prefix": "fix",
    },
}

REPO_CONFIG_PATH = ".backporter.yaml"
_NESTED_SECTIONS = ("history", "ci")


def global_config_path() -> Path:
    return Path.home() / ".config" / "backporter" / "config.yaml"


def default_history_path() -> Path:
    return Path.home() / ".cache" / "backporter" / "history.json"


def _read_yaml(path: Path) -> dict:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping.")
    return data


def _merge(config: dict, overrides: dict) -> None:
    for key, value in overrides.items():
        if key in _NESTED_SECTIONS and isinstance(value, dict):
            config[key].update(value)
        else:
            config[key] = value


def load_config(config_path: Optional[str] = None, cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. ~/.config/backporter/config.yaml
      3. .backporter.yaml in the current directory
      4. The explicit ``config_path``, which must exist
      5. CLI argument overrides
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    for path in (global_config_path(), Path(REPO_CONFIG_PATH)):
        if not path.exists():
            continue
        try:
            _merge(config, _read_yaml(path))
            logger.debug("Loaded config from %s", path)
        except (yaml.YAMLError, ConfigError) as e:
            logger.debug("Ignoring unreadable config %s: %s", path, e)

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            _merge(config, _read_yaml(path))
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file {config_path}: {e}") from e
        logger.debug("Loaded explicit config from %s", path)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["forgejo_token"] = os.environ.get("FORGEJO_TOKEN")
    if not config.get("forgejo_url"):
        config["forgejo_url"] = os.environ.get("FORGEJO_URL")

    validate_config(config)
    if not config.get("forge_type"):
        logger.warning("forge_type not configured - pull request features will be unavailable")
    return config


def validate_config(config: dict) -> None:
    forge_type = config.get("forge_type")
    if forge_type and forge_type not in SUPPORTED_FORGES:
        raise ConfigError(f"Invalid forge_type: {forge_type} (must be 'github' or 'forgejo')")
    if not isinstance(config.get("target_branches") or [], list):
        raise ConfigError("target_branches must be a list of branch names or patterns")
    for section in _NESTED_SECTIONS:
        if section in config and not isinstance(config[section], dict):
            raise ConfigError(f"{section} must be a mapping, got {config[section]!r}")


_PERSISTED_KEYS = (
    "forge_type",
    "forgejo_url",
    "target_branches",
    "default_branch",
    "remote",
    "recent_pr_count",
    "author_name",
    "author_email",
    "history",
    "ci",
)


def save_config(config: dict, path: str = REPO_CONFIG_PATH) -> None:
    """Write or update a config file, preserving any existing keys. Credentials are never written."""
    target = Path(path)
    existing: dict = {}
    if target.exists():
        existing = yaml.safe_load(target.read_text()) or {}
    existing.update({k: v for k, v in config.items() if k in _PERSISTED_KEYS and v is not None})
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
