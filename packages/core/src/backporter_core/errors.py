"""Error taxonomy shared by the engine, the pipeline and the adapters.

Precondition errors are fatal to a single operation and never retried.
Conflicts are not errors: they are a terminal outcome (see models.py).
"""

from __future__ import annotations


class BackportError(Exception):
    """Base class for every error raised by backporter."""


class ConfigError(BackportError):
    """Invalid configuration or an environment that must not run the command."""


class PreconditionError(BackportError):
    """A requirement of the operation was not met; nothing was mutated."""


class CommitNotFoundError(PreconditionError):
    def __init__(self, ref: str, detail: str = ""):
        self.ref = ref
        super().__init__(f"Commit not found: {ref}" + (f" ({detail})" if detail else ""))


class DirtyWorkingTreeError(PreconditionError):
    def __init__(self):
        super().__init__("Repository has uncommitted changes, please commit or stash them first.")


class BranchNotFoundError(PreconditionError):
    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"Target branch {branch} does not exist.")


class NotSquashMergedError(PreconditionError):
    def __init__(self, pr_number: int):
        self.pr_number = pr_number
        super().__init__(
            f"PR #{pr_number} was not squash merged - please backport individual commits instead."
        )


class ForgeNotConfiguredError(PreconditionError):
    def __init__(self):
        super().__init__("Forge not configured, cannot work with pull requests. Set forge_type in .backporter.yaml.")


class GitCommandError(BackportError):
    """A git invocation exited non-zero and the caller did not classify it."""

    def __init__(self, args: list[str], returncode: int, output: str):
        self.argv = list(args)
        self.returncode = returncode
        self.output = output
        super().__init__(f"{' '.join(self.argv)} failed with exit code {returncode}: {output.strip()}")


class ForgeError(BackportError):
    """A forge API call failed or returned an unusable response."""
