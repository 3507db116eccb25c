from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

GIT_URL = "https://codefloe.com/pat-s/backporter"


def _get_version() -> str:
    """Read the current backporter version from the installed package metadata."""
    try:
        return version("backporter")
    except PackageNotFoundError:
        return "dev"


__version__ = _get_version()


def full_version() -> str:
    return f"backporter {__version__} ({GIT_URL})"


def signature_message(original_sha: str) -> str:
    """Return the provenance trailer appended to every backported commit."""
    return f"Backported-from: {original_sha}\nBackported-by: {full_version()}"
