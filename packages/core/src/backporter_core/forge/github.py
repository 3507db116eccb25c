from __future__ import annotations

import requests
from github import Auth, Github, GithubException

from backporter_core.errors import ForgeError
from backporter_core.forge.base import BaseForge
from backporter_core.forge.types import CommitInfo, PullRequestInfo


def _pull_to_info(pr) -> PullRequestInfo:
    return PullRequestInfo(
        number=pr.number,
        title=pr.title or "",
        body=pr.body or "",
        state=pr.state or "",
        merge_commit=pr.merge_commit_sha or "",
        head_sha=pr.head.sha if pr.head else "",
        head_branch=pr.head.ref if pr.head else "",
        base_branch=pr.base.ref if pr.base else "",
        # merged_at is present in list payloads too; reading pr.merged would cost one request per PR.
        merged=pr.merged_at is not None,
        author=pr.user.login if pr.user else "",
        merged_at=pr.merged_at,
        labels=frozenset(label.name for label in pr.labels),
    )


# PyGithub raises requests errors unwrapped on timeouts and connection failures.
_API_ERRORS = (GithubException, requests.RequestException)


def _message(e: Exception) -> str:
    data = getattr(e, "data", None)
    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return str(e)


class GitHubForge(BaseForge):
    """GitHub adapter backed by PyGithub."""

    def __init__(self, token: str | None = None, client: Github | None = None):
        if client is not None:
            self._gh = client
        elif token:
            self._gh = Github(auth=Auth.Token(token), timeout=self.TIMEOUT)
        else:
            self._gh = Github(timeout=self.TIMEOUT)

    @property
    def name(self) -> str:
        return "github"

    def _repo(self, owner: str, repo: str):
        try:
            return self._gh.get_repo(f"{owner}/{repo}")
        except _API_ERRORS as e:
            raise ForgeError(f"Failed to access {owner}/{repo}: {_message(e)}") from e

    def _fetch_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        try:
            pr = self._repo(owner, repo).get_pull(number)
            return _pull_to_info(pr)
        except _API_ERRORS as e:
            raise ForgeError(f"Failed to get PR #{number}: {_message(e)}") from e

    def get_commit(self, owner: str, repo: str, sha: str) -> CommitInfo:
        try:
            commit = self._repo(owner, repo).get_commit(sha)
        except _API_ERRORS as e:
            raise ForgeError(f"Failed to get commit {sha}: {_message(e)}") from e
        git_author = commit.commit.author
        return CommitInfo(
            sha=commit.sha,
            message=commit.commit.message or "",
            author=git_author.name if git_author else "",
            email=git_author.email if git_author else "",
            timestamp=git_author.date if git_author else None,
            parents=tuple(p.sha for p in commit.parents),
        )

    def list_recent_pull_requests(self, owner: str, repo: str, limit: int) -> list[PullRequestInfo]:
        results: list[PullRequestInfo] = []
        try:
            for pr in self._repo(owner, repo).get_pulls(state="closed", sort="updated", direction="desc"):
                if not pr.merged_at:
                    continue
                results.append(_pull_to_info(pr))
                if len(results) >= limit:
                    break
        except _API_ERRORS as e:
            raise ForgeError(f"Failed to list PRs: {_message(e)}") from e
        return results

    def list_open_pull_requests(self, owner: str, repo: str, head: str | None = None) -> list[PullRequestInfo]:
        kwargs = {"state": "open"}
        if head:
            # GitHub only filters by head when qualified with the owner.
            kwargs["head"] = f"{owner}:{head}"
        try:
            return [_pull_to_info(pr) for pr in self._repo(owner, repo).get_pulls(**kwargs)]
        except _API_ERRORS as e:
            raise ForgeError(f"Failed to list open PRs: {_message(e)}") from e

    def create_pull_request(self, owner: str, repo: str, title: str, body: str, head: str, base: str) -> int:
        try:
            pr = self._repo(owner, repo).create_pull(title=title, body=body, head=head, base=base)
        except _API_ERRORS as e:
            raise ForgeError(f"Failed to create PR: {_message(e)}") from e
        return pr.number
