"""Tests for the git adapter.

Pure helpers are tested directly; GitRepository runs against real
throwaway repositories and is skipped when git is not installed.
"""

from __future__ import annotations

import shutil
import subprocess

import pytest

from backporter_core.errors import CommitNotFoundError, GitCommandError
from backporter_core.git.repository import (
    CherryPickStatus,
    GitRepository,
    is_ci_environment,
    looks_like_sha,
    parse_remote_url,
)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git(path, *args) -> str:
    result = subprocess.run(["git", *args], cwd=path, check=True, capture_output=True, text=True)
    return result.stdout.strip()


def _commit(path, filename: str, content: str, message: str) -> str:
    (path / filename).write_text(content)
    _git(path, "add", filename)
    _git(path, "commit", "-q", "-m", message)
    return _git(path, "rev-parse", "HEAD")


@pytest.fixture
def repo_path(tmp_path, monkeypatch):
    """A repository on ``main`` with one commit and a ``release`` branch at it."""
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in ("CI", "GITHUB_ACTIONS"):
        monkeypatch.delenv(var, raising=False)

    path = tmp_path / "repo"
    path.mkdir()
    _git(path, "init", "-q")
    _git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(path, "config", "user.name", "Test User")
    _git(path, "config", "user.email", "test@example.com")
    _git(path, "config", "commit.gpgsign", "false")
    _commit(path, "app.txt", "line one\n", "initial commit")
    _git(path, "branch", "release")
    return path


@pytest.fixture
def repo(repo_path):
    return GitRepository(str(repo_path))


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestParseRemoteUrl:
    def test_ssh(self):
        assert parse_remote_url("git@github.com:owner/repo.git") == ("owner", "repo")

    def test_ssh_without_suffix(self):
        assert parse_remote_url("git@codeberg.org:owner/repo") == ("owner", "repo")

    def test_ssh_url_scheme(self):
        assert parse_remote_url("ssh://git@codeberg.org/owner/repo.git") == ("owner", "repo")

    def test_https(self):
        assert parse_remote_url("https://github.com/owner/repo.git") == ("owner", "repo")

    def test_https_trailing_slash(self):
        assert parse_remote_url("https://codefloe.com/owner/repo/") == ("owner", "repo")

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_remote_url("/srv/git/repo.git")
        with pytest.raises(ValueError):
            parse_remote_url("git@github.com:repo.git")


class TestEnvironmentHelpers:
    def test_ci_detected(self):
        assert is_ci_environment({"CI": "true"})
        assert is_ci_environment({"GITHUB_ACTIONS": "true"})

    def test_ci_not_detected(self):
        assert not is_ci_environment({})
        assert not is_ci_environment({"CI": ""})

    def test_looks_like_sha(self):
        assert looks_like_sha("abc1234")
        assert looks_like_sha("A" * 40)
        assert not looks_like_sha("abc12")
        assert not looks_like_sha("release-1")


# ---------------------------------------------------------------------------
# GitRepository
# ---------------------------------------------------------------------------


@requires_git
class TestInspection:
    def test_resolve_revision_expands_short_hash(self, repo, repo_path):
        sha = _git(repo_path, "rev-parse", "HEAD")
        assert repo.resolve_revision(sha[:8]) == sha
        assert repo.resolve_revision("main") == sha

    def test_resolve_revision_unknown(self, repo):
        with pytest.raises(CommitNotFoundError):
            repo.resolve_revision("deadbeef")

    def test_commit_message(self, repo):
        assert repo.commit_message("HEAD") == "initial commit"

    def test_current_branch(self, repo):
        assert repo.current_branch() == "main"

    def test_current_branch_detached(self, repo, repo_path):
        _git(repo_path, "checkout", "-q", "--detach")
        with pytest.raises(GitCommandError):
            repo.current_branch()

    def test_branches(self, repo):
        assert repo.branch_exists("release")
        assert not repo.branch_exists("nope")
        assert repo.list_branches() == ["main", "release"]

    def test_uncommitted_changes_ignore_untracked(self, repo, repo_path):
        (repo_path / "notes.txt").write_text("scratch\n")
        assert not repo.has_uncommitted_changes()

        (repo_path / "app.txt").write_text("changed\n")
        assert repo.has_uncommitted_changes()


@requires_git
class TestMutation:
    def test_create_checkout_delete_branch(self, repo, repo_path):
        first = _git(repo_path, "rev-parse", "HEAD")
        _commit(repo_path, "app.txt", "line two\n", "second")

        repo.create_branch("scratch", first)
        repo.checkout("scratch")
        assert repo.current_commit_sha() == first

        repo.checkout("main")
        repo.delete_branch("scratch")
        assert not repo.branch_exists("scratch")

    def test_cherry_pick_success(self, repo, repo_path):
        sha = _commit(repo_path, "new.txt", "hello\n", "feat: add new file")
        repo.checkout("release")

        result = repo.cherry_pick(sha)

        assert result.status is CherryPickStatus.SUCCESS
        assert not result.has_conflict
        assert (repo_path / "new.txt").read_text() == "hello\n"
        assert repo.commit_message("HEAD") == "feat: add new file"

    def test_cherry_pick_conflict_and_abort(self, repo, repo_path):
        sha = _commit(repo_path, "app.txt", "from main\n", "fix: main change")
        repo.checkout("release")
        _commit(repo_path, "app.txt", "from release\n", "fix: release change")
        before = repo.current_commit_sha()

        result = repo.cherry_pick(sha)

        assert result.status is CherryPickStatus.CONFLICT
        assert "CONFLICT" in result.output

        repo.abort_cherry_pick()
        assert repo.current_commit_sha() == before
        assert not repo.has_uncommitted_changes()

    def test_cherry_pick_continue_after_resolution(self, repo, repo_path):
        sha = _commit(repo_path, "app.txt", "from main\n", "fix: main change")
        repo.checkout("release")
        _commit(repo_path, "app.txt", "from release\n", "fix: release change")
        assert repo.cherry_pick(sha).has_conflict

        (repo_path / "app.txt").write_text("resolved\n")
        _git(repo_path, "add", "app.txt")
        repo.continue_cherry_pick()

        assert repo.commit_message("HEAD") == "fix: main change"
        assert not repo.has_uncommitted_changes()

    def test_cherry_pick_unknown_commit_is_hard_failure(self, repo):
        with pytest.raises(GitCommandError) as exc_info:
            repo.cherry_pick("0" * 40)
        assert exc_info.value.argv[:2] == ["git", "cherry-pick"]

    def test_amend_message(self, repo):
        repo.amend_message("initial commit\n\nBackported-from: abc")
        assert repo.commit_message("HEAD").endswith("Backported-from: abc")

    def test_configure_identity_only_fills_gaps(self, repo, repo_path):
        assert repo.configure_identity("bot", "bot@example.com") is False

        _git(repo_path, "config", "--unset", "user.email")
        assert repo.configure_identity("bot", "bot@example.com") is True
        assert repo.get_config("user.email") == "bot@example.com"
        assert repo.get_config("user.name") == "Test User"


@requires_git
class TestRemote:
    @pytest.fixture
    def remote_path(self, tmp_path, repo_path):
        path = tmp_path / "remote.git"
        _git(tmp_path, "init", "-q", "--bare", str(path))
        _git(repo_path, "remote", "add", "origin", str(path))
        _git(repo_path, "push", "-q", "origin", "main", "release")
        return path

    def test_remote_url(self, repo, remote_path):
        assert repo.remote_url("origin") == str(remote_path)

    def test_fetch_and_list_remote_branches(self, repo, remote_path):
        repo.fetch("origin")
        assert repo.list_remote_branches("origin") == ["main", "release"]

    def test_push_new_branch(self, repo, repo_path, remote_path):
        repo.create_branch("backport-1-to-release", "release")
        repo.push("origin", "backport-1-to-release")

        assert _git(remote_path, "branch", "--list", "backport-1-to-release").strip("* ") == "backport-1-to-release"

    def test_fetch_unknown_remote_raises(self, repo):
        with pytest.raises(GitCommandError):
            repo.fetch("nowhere")
