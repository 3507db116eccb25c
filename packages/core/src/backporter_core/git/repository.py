"""Git adapter driving the ``git`` executable.

Every call is a blocking subprocess with captured text output. Cherry-pick
success or conflict is deduced from git's output: git signals both a
conflict and a hard failure with the same non-zero exit status.
"""

from __future__ import annotations

import enum
import logging
import os
import re
import subprocess
from dataclasses import dataclass
from typing import Mapping

from backporter_core.errors import CommitNotFoundError, GitCommandError

logger = logging.getLogger(__name__)

_CONFLICT_MARKERS = ("CONFLICT", "after resolving the conflicts")
_HTTP_REMOTE_RE = re.compile(r"^https?://[^/]+/([^/]+)/([^/]+?)(?:\.git)?/?$")
_SHA_RE = re.compile(r"^[0-9a-fA-F]{7,40}$")


class CherryPickStatus(enum.Enum):
    SUCCESS = "success"
    CONFLICT = "conflict"


@dataclass
class CherryPickResult:
    status: CherryPickStatus
    output: str

    @property
    def has_conflict(self) -> bool:
        return self.status is CherryPickStatus.CONFLICT


def is_ci_environment(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return bool(env.get("CI") or env.get("GITHUB_ACTIONS"))


def looks_like_sha(text: str) -> bool:
    return bool(_SHA_RE.match(text))


def parse_remote_url(url: str) -> tuple[str, str]:
    """Extract (owner, repo) from an SSH or HTTP(S) remote URL.

    git@github.com:owner/repo.git      →  (owner, repo)
    https://codeberg.org/owner/repo    →  (owner, repo)
    """
    url = url.strip()
    if url.startswith("git@") or url.startswith("ssh://"):
        path = url.split(":", 1)[1] if url.startswith("git@") else url.split("/", 3)[-1]
        parts = path.removesuffix("/").removesuffix(".git").split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Invalid SSH remote URL: {url}")
        return parts[0], parts[1]

    match = _HTTP_REMOTE_RE.match(url)
    if not match:
        raise ValueError(f"Invalid HTTPS remote URL: {url}")
    return match.group(1), match.group(2)


class GitRepository:
    """Inspection and mutation of one working tree."""

    def __init__(self, path: str = "."):
        self.path = path

    # ------------------------------------------------------------------ #
    # Plumbing                                                             #
    # ------------------------------------------------------------------ #

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        argv = ["git", *args]
        logger.debug("Running %s", " ".join(argv))
        result = subprocess.run(
            argv,
            cwd=self.path,
            capture_output=True,
            text=True,
        )
        if check and result.returncode != 0:
            raise GitCommandError(argv, result.returncode, (result.stdout or "") + (result.stderr or ""))
        return result

    def _output(self, *args: str) -> str:
        return self._run(*args).stdout.strip()

    # ------------------------------------------------------------------ #
    # Inspection                                                           #
    # ------------------------------------------------------------------ #

    def resolve_revision(self, ref: str) -> str:
        """Resolve a branch, tag or abbreviated hash to the full commit hash."""
        result = self._run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False)
        sha = result.stdout.strip()
        if result.returncode != 0 or not sha:
            raise CommitNotFoundError(ref)
        return sha

    def commit_message(self, ref: str) -> str:
        return self._run("log", "-1", "--format=%B", ref).stdout.rstrip("\n")

    def current_commit_sha(self) -> str:
        return self._output("rev-parse", "HEAD")

    def current_branch(self) -> str:
        result = self._run("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        if result.returncode != 0:
            raise GitCommandError(["git", "symbolic-ref", "HEAD"], result.returncode, "HEAD is not pointing to a branch")
        return result.stdout.strip()

    def branch_exists(self, name: str) -> bool:
        result = self._run("show-ref", "--verify", "--quiet", f"refs/heads/{name}", check=False)
        return result.returncode == 0

    def list_branches(self) -> list[str]:
        out = self._output("for-each-ref", "--format=%(refname:short)", "refs/heads/")
        return [line for line in out.splitlines() if line]

    def list_remote_branches(self, remote: str) -> list[str]:
        """Branch names tracked from ``remote``, without the remote prefix."""
        prefix = f"{remote}/"
        out = self._output("for-each-ref", "--format=%(refname:short)", f"refs/remotes/{remote}/")
        return [line[len(prefix) :] for line in out.splitlines() if line.startswith(prefix) and line != f"{remote}/HEAD"]

    def has_uncommitted_changes(self) -> bool:
        """True if tracked files are modified or staged. Untracked files are ignored."""
        out = self._run("status", "--porcelain").stdout
        return any(line and not line.startswith("??") for line in out.splitlines())

    def remote_url(self, name: str) -> str:
        return self._output("remote", "get-url", name)

    # ------------------------------------------------------------------ #
    # Mutation                                                             #
    # ------------------------------------------------------------------ #

    def checkout(self, branch: str) -> None:
        # No "--" separator: it would make git treat the branch as a path.
        self._run("checkout", branch)

    def create_branch(self, name: str, from_ref: str | None = None) -> None:
        args = ["branch", "--", name]
        if from_ref:
            args.append(from_ref)
        self._run(*args)

    def delete_branch(self, name: str) -> None:
        self._run("branch", "-D", "--", name)

    def cherry_pick(self, sha: str) -> CherryPickResult:
        result = self._run("cherry-pick", sha, check=False)
        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode == 0:
            return CherryPickResult(CherryPickStatus.SUCCESS, output)
        if any(marker in output for marker in _CONFLICT_MARKERS):
            return CherryPickResult(CherryPickStatus.CONFLICT, output)
        raise GitCommandError(["git", "cherry-pick", sha], result.returncode, output)

    def abort_cherry_pick(self) -> None:
        self._run("cherry-pick", "--abort")

    def continue_cherry_pick(self) -> None:
        self._run("-c", "core.editor=true", "cherry-pick", "--continue")

    def amend_message(self, message: str) -> None:
        self._run("commit", "--amend", "-m", message)

    def push(self, remote: str, branch: str) -> None:
        self._run("push", "--set-upstream", remote, branch)

    def fetch(self, remote: str) -> None:
        self._run("fetch", remote)

    def get_config(self, key: str) -> str | None:
        result = self._run("config", "--get", key, check=False)
        value = result.stdout.strip()
        return value or None

    def configure_identity(self, name: str, email: str) -> bool:
        """Set user.name / user.email where unset. Returns True if anything was written."""
        changed = False
        for key, value in (("user.name", name), ("user.email", email)):
            if self.get_config(key) is None:
                self._run("config", key, value)
                changed = True
        return changed
