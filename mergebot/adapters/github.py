"""GitHub API adapter."""

from datetime import datetime
from typing import Any, Dict, List

import requests

from mergebot.adapters.base import GitPlatformAdapter, GitPlatformError
from mergebot.models import Comment, PullRequest, RepoEvent

PER_PAGE = 100


def _parse_iso(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _comment_from_api(data: Dict[str, Any]) -> Comment:
    user = data.get("user") or {}
    created = _parse_iso(data["created_at"])
    updated = _parse_iso(data.get("updated_at") or data["created_at"])
    return Comment(
        id=data["id"],
        body=data.get("body") or "",
        author=user.get("login", ""),
        created_at=created,
        updated_at=updated,
    )


def _pull_from_api(data: Dict[str, Any]) -> PullRequest:
    head = data.get("head") or {}
    # head.repo is null when the fork was deleted
    head_repo = head.get("repo") or {}
    user = data.get("user") or {}
    return PullRequest(
        number=data["number"],
        title=data.get("title") or "",
        body=data.get("body") or "",
        author=user.get("login", ""),
        state=data.get("state", "open"),
        head_sha=head.get("sha", ""),
        head_label=head.get("label", ""),
        head_ref=head.get("ref", ""),
        ssh_url=head_repo.get("ssh_url", ""),
        html_url=data.get("html_url"),
        created_at=_parse_iso(data["created_at"]),
        updated_at=_parse_iso(data["updated_at"]),
    )


def _event_from_api(data: Dict[str, Any]) -> RepoEvent:
    actor = data.get("actor") or {}
    repo = data.get("repo") or {}
    return RepoEvent(
        id=str(data["id"]),
        type=data.get("type", ""),
        repo_name=repo.get("name", ""),
        actor_id=actor.get("id", 0),
        actor_login=actor.get("login", ""),
        payload=data.get("payload") or {},
    )


class GitHubAdapter(GitPlatformAdapter):
    """GitHub API implementation."""

    def __init__(self, token: str | None, api_url: str = "https://api.github.com") -> None:
        self._api_url = api_url.rstrip("/")
        self._session = requests.Session()
        if token:
            self._session.headers["Authorization"] = f"token {token}"
        self._session.headers["Accept"] = "application/vnd.github.v3+json"

    def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        json: Dict[str, Any] | None = None,
    ) -> requests.Response:
        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self._api_url}{path}" if path.startswith("/") else f"{self._api_url}/{path}"
        try:
            resp = self._session.request(method, url, params=params, json=json, timeout=30)
        except requests.RequestException as e:
            raise GitPlatformError(f"{method} {path}: {e}") from e
        if resp.status_code >= 400:
            msg = resp.text or resp.reason or str(resp.status_code)
            try:
                msg = resp.json().get("message", msg)
            except Exception:
                pass
            raise GitPlatformError(f"{resp.status_code}: {msg}")
        return resp

    def _get_pages(self, path: str, params: Dict[str, Any] | None) -> List[Dict[str, Any]]:
        """GET a list endpoint, following Link rel="next" until the last page."""
        items: List[Dict[str, Any]] = []
        url: str | None = path
        while url:
            resp = self._request("GET", url, params=params)
            items.extend(resp.json() or [])
            url = (resp.links or {}).get("next", {}).get("url")
            # the next link already carries the query string
            params = None
        return items

    def list_open_pulls(self, repo: str) -> List[PullRequest]:
        data = self._get_pages(f"/repos/{repo}/pulls", {"state": "open", "per_page": PER_PAGE})
        return [_pull_from_api(d) for d in data if d.get("number")]

    def get_issue_comments(
        self,
        repo: str,
        issue_number: int,
        since: datetime | None = None,
    ) -> List[Comment]:
        params: Dict[str, Any] = {"per_page": PER_PAGE}
        if since is not None:
            params["since"] = since.isoformat()
        data = self._get_pages(f"/repos/{repo}/issues/{issue_number}/comments", params)
        return [_comment_from_api(d) for d in data]

    def create_comment(self, repo: str, issue_number: int, body: str) -> Comment:
        resp = self._request("POST", f"/repos/{repo}/issues/{issue_number}/comments", json={"body": body})
        return _comment_from_api(resp.json())

    def list_repo_events(self, repo: str) -> List[RepoEvent]:
        resp = self._request("GET", f"/repos/{repo}/events", params={"per_page": PER_PAGE})
        data = resp.json() or []
        return [_event_from_api(d) for d in data]

    def get_user(self, login: str) -> Dict[str, Any]:
        return self._request("GET", f"/users/{login}").json() or {}
