"""Forgejo / Gitea adapter over the REST API (``/api/v1``)."""

from __future__ import annotations

import logging
from datetime import datetime

import requests

from backporter_core.errors import ForgeError
from backporter_core.forge.base import BaseForge
from backporter_core.forge.types import CommitInfo, PullRequestInfo

logger = logging.getLogger(__name__)

_PAGE_SIZE = 50


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _error_message(response: requests.Response) -> str:
    """Extract a clean error message from an API response."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return data["message"]
    return response.text.strip()


def _pull_to_info(data: dict) -> PullRequestInfo:
    head = data.get("head") or {}
    base = data.get("base") or {}
    user = data.get("user") or {}
    return PullRequestInfo(
        number=data.get("number", 0),
        title=data.get("title") or "",
        body=data.get("body") or "",
        state=data.get("state") or "",
        merge_commit=data.get("merge_commit_sha") or "",
        head_sha=head.get("sha") or "",
        head_branch=head.get("ref") or "",
        base_branch=base.get("ref") or "",
        merged=bool(data.get("merged")),
        author=user.get("login") or "",
        merged_at=_parse_time(data.get("merged_at")),
        labels=frozenset(label.get("name", "") for label in data.get("labels") or []),
    )


class ForgejoForge(BaseForge):
    def __init__(self, base_url: str, token: str | None = None, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if token:
            self._session.headers["Authorization"] = f"token {token}"

    @property
    def name(self) -> str:
        return "forgejo"

    def _request(self, method: str, path: str, action: str, **kwargs):
        url = f"{self.base_url}/api/v1{path}"
        try:
            response = self._session.request(method, url, timeout=self.TIMEOUT, **kwargs)
        except requests.RequestException as e:
            raise ForgeError(f"Failed to {action}: {e}") from e
        if not response.ok:
            raise ForgeError(f"Failed to {action}: {response.status_code} {response.reason} ({_error_message(response)})")
        try:
            return response.json()
        except ValueError as e:
            raise ForgeError(f"Failed to decode response to {action}: {e}") from e

    def _fetch_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        data = self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}", f"get PR #{number}")
        return _pull_to_info(data)

    def get_commit(self, owner: str, repo: str, sha: str) -> CommitInfo:
        data = self._request("GET", f"/repos/{owner}/{repo}/git/commits/{sha}", f"get commit {sha}")
        commit = data.get("commit") or {}
        author = commit.get("author") or {}
        return CommitInfo(
            sha=data.get("sha") or sha,
            message=commit.get("message") or "",
            author=author.get("name") or "",
            email=author.get("email") or "",
            timestamp=_parse_time(author.get("date")),
            parents=tuple(p.get("sha", "") for p in data.get("parents") or []),
        )

    def list_recent_pull_requests(self, owner: str, repo: str, limit: int) -> list[PullRequestInfo]:
        params = {"state": "closed", "sort": "recentupdate", "limit": limit}
        data = self._request("GET", f"/repos/{owner}/{repo}/pulls", "list PRs", params=params)
        results = [_pull_to_info(pr) for pr in data if pr.get("merged")]
        return results[:limit]

    def list_open_pull_requests(self, owner: str, repo: str, head: str | None = None) -> list[PullRequestInfo]:
        # The pulls endpoint has no reliable head filter, so filter client-side.
        results: list[PullRequestInfo] = []
        page = 1
        while True:
            params = {"state": "open", "limit": _PAGE_SIZE, "page": page}
            data = self._request("GET", f"/repos/{owner}/{repo}/pulls", "list open PRs", params=params)
            for pr in data:
                info = _pull_to_info(pr)
                if head is None or info.head_branch == head:
                    results.append(info)
            if len(data) < _PAGE_SIZE:
                return results
            page += 1

    def create_pull_request(self, owner: str, repo: str, title: str, body: str, head: str, base: str) -> int:
        payload = {"title": title, "body": body, "head": head, "base": base}
        data = self._request("POST", f"/repos/{owner}/{repo}/pulls", "create PR", json=payload)
        number = data.get("number")
        if not number:
            raise ForgeError("Failed to create PR: response has no number")
        logger.debug("Created PR #%d on %s", number, self.base_url)
        return number
