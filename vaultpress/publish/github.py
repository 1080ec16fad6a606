"""Minimal client for the GitHub Git Data API."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .errors import RemoteApiError

logger = logging.getLogger("vaultpress.publish.github")

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_USER_AGENT = "vaultpress-publisher/0.1"


class GitHubClient:
    """Issue the Git Data calls a publish needs against one repository.

    Each method maps to one REST call and raises :class:`RemoteApiError`
    naming that call on any failure. Nothing is retried.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.api_url = (api_url or DEFAULT_API_URL).rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent,
        }

    @property
    def repo_url(self) -> str:
        return f"{self.api_url}/repos/{quote(self.owner)}/{quote(self.repo)}"

    def get_ref(self, branch: str) -> str:
        """Return the commit sha the branch currently points at."""

        data = self._request("get-ref", "GET", f"/git/ref/heads/{_quote_ref(branch)}")
        return _require(data, "get-ref", "object", "sha")

    def get_commit(self, commit_sha: str) -> str:
        """Return the root tree sha of a commit."""

        data = self._request("get-commit", "GET", f"/git/commits/{quote(commit_sha)}")
        return _require(data, "get-commit", "tree", "sha")

    def get_tree(self, tree_sha: str) -> List[Dict[str, Any]]:
        """Return the flat recursive listing of a tree."""

        data = self._request("get-tree", "GET", f"/git/trees/{quote(tree_sha)}?recursive=1")
        if data.get("truncated"):
            raise RemoteApiError(
                "get-tree",
                "tree listing was truncated by the API; the mirrored region is too large",
            )
        items = data.get("tree")
        if not isinstance(items, list):
            raise RemoteApiError("get-tree", "response is missing the 'tree' listing")
        return items

    def create_tree(self, base_tree: str, entries: Sequence[Dict[str, Any]]) -> str:
        payload = {"base_tree": base_tree, "tree": list(entries)}
        data = self._request("create-tree", "POST", "/git/trees", payload)
        return _require(data, "create-tree", "sha")

    def create_commit(
        self,
        message: str,
        tree: str,
        parents: Sequence[str],
        author: Dict[str, str],
        committer: Optional[Dict[str, str]] = None,
    ) -> str:
        payload = {
            "message": message,
            "tree": tree,
            "parents": list(parents),
            "author": dict(author),
            "committer": dict(committer or author),
        }
        data = self._request("create-commit", "POST", "/git/commits", payload)
        return _require(data, "create-commit", "sha")

    def update_ref(self, branch: str, commit_sha: str, force: bool = False) -> None:
        """Move the branch to ``commit_sha``; a non-fast-forward move fails."""

        payload = {"sha": commit_sha, "force": force}
        self._request("update-ref", "PATCH", f"/git/refs/heads/{_quote_ref(branch)}", payload)

    def _request(
        self,
        call: str,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.repo_url}{path}"
        headers = dict(self.headers)
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"

        req = Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s (%s)", method, url, call)

        try:
            with urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except HTTPError as exc:
            raise RemoteApiError(call, _http_error_message(exc), status=exc.code) from exc
        except URLError as exc:
            raise RemoteApiError(call, f"connection error: {exc.reason}") from exc
        except TimeoutError as exc:
            raise RemoteApiError(call, f"timed out after {self.timeout}s") from exc
        except OSError as exc:
            raise RemoteApiError(call, f"connection error: {exc}") from exc

        if not body.strip():
            return {}
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError as exc:
            raise RemoteApiError(call, "response is not valid JSON") from exc
        if not isinstance(parsed, dict):
            raise RemoteApiError(call, "response is not a JSON object")
        return parsed


def _quote_ref(branch: str) -> str:
    return quote(branch.strip("/"), safe="/")


def _require(data: Dict[str, Any], call: str, *keys: str) -> str:
    cursor: Any = data
    for key in keys:
        if not isinstance(cursor, dict) or key not in cursor:
            raise RemoteApiError(call, f"response is missing '{'.'.join(keys)}'")
        cursor = cursor[key]
    if not isinstance(cursor, str) or not cursor:
        raise RemoteApiError(call, f"response has an empty '{'.'.join(keys)}'")
    return cursor


def _http_error_message(exc: HTTPError) -> str:
    try:
        raw = exc.read().decode("utf-8")
        message = json.loads(raw).get("message")
    except (OSError, ValueError, AttributeError):
        message = None
    return str(message or exc.reason)


__all__ = ["GitHubClient", "DEFAULT_API_URL", "DEFAULT_TIMEOUT", "DEFAULT_USER_AGENT"]
