"""Publish settings derived from the merged runtime configuration."""

from __future__ import annotations

from dataclasses import dataclass
import os
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .github import DEFAULT_API_URL, DEFAULT_TIMEOUT
from .selection import normalize_folder, normalize_selection

DEFAULT_BRANCH = "main"
DEFAULT_TOKEN_ENV = "GITHUB_TOKEN"
DEFAULT_INTERVAL_MINUTES = 60
DEFAULT_READ_WORKERS = 4
DEFAULT_COMMIT_MESSAGE = "Publish vault to GitHub"
DEFAULT_AUTHOR_NAME = "Vaultpress Publisher"
DEFAULT_AUTHOR_EMAIL = "vaultpress-bot@users.noreply.github.com"
DEFAULT_STATE_FILE = "state/publish.json"

# host/owner/repo[.git], with an optional scheme and user (https://, git@host:)
_REPO_URL_PATTERN = re.compile(
    r"^(?:[a-z][a-z0-9+.-]*://)?(?:[^@/\s]+@)?"
    r"(?P<host>[^/:\s]+)(?::\d+)?[:/]"
    r"(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+?)(?:\.git)?/?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RepositoryTarget:
    """Owner/repo coordinates parsed from the configured repository URL."""

    host: str
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    def default_api_url(self) -> str:
        if self.host.lower() in {"github.com", "www.github.com"}:
            return DEFAULT_API_URL
        return f"https://{self.host}/api/v3"


def parse_repository_url(url: str) -> RepositoryTarget:
    """Parse ``https://host/owner/repo(.git)`` style URLs."""

    match = _REPO_URL_PATTERN.match((url or "").strip())
    if not match:
        raise ConfigurationError(
            f"invalid repository URL '{url}'; expected host/owner/repo[.git]"
        )
    return RepositoryTarget(
        host=match.group("host"),
        owner=match.group("owner"),
        repo=match.group("repo"),
    )


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class PublishSettings:
    """Settings for publishing a vault selection to a repository branch."""

    repository_url: str = ""
    branch: str = DEFAULT_BRANCH
    folder: str = ""
    selected_paths: Tuple[str, ...] = ()
    interval_minutes: float = DEFAULT_INTERVAL_MINUTES
    token: str = ""
    token_env: str = DEFAULT_TOKEN_ENV
    api_url: str = ""
    timeout: float = DEFAULT_TIMEOUT
    read_workers: int = DEFAULT_READ_WORKERS
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    author_name: str = DEFAULT_AUTHOR_NAME
    author_email: str = DEFAULT_AUTHOR_EMAIL
    state_file: str = DEFAULT_STATE_FILE

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "PublishSettings":
        raw = (config or {}).get("publish") or {}
        raw_paths = raw.get("selected_paths") or []
        if isinstance(raw_paths, str):
            raw_paths = [raw_paths]
        # "/" and "." select the vault root; only blank entries are dropped.
        normalized = (normalize_selection(str(path)) for path in raw_paths)
        selected = tuple(path for path in normalized if path)
        return cls(
            repository_url=str(raw.get("repository_url") or "").strip(),
            branch=str(raw.get("branch") or DEFAULT_BRANCH).strip(),
            folder=normalize_folder(str(raw.get("folder") or "")),
            selected_paths=selected,
            interval_minutes=_as_float(raw.get("interval_minutes"), DEFAULT_INTERVAL_MINUTES),
            token=str(raw.get("token") or "").strip(),
            token_env=str(raw.get("token_env") or DEFAULT_TOKEN_ENV).strip(),
            api_url=str(raw.get("api_url") or "").strip(),
            timeout=_as_float(raw.get("timeout"), DEFAULT_TIMEOUT),
            read_workers=max(1, _as_int(raw.get("read_workers"), DEFAULT_READ_WORKERS)),
            commit_message=str(raw.get("commit_message") or DEFAULT_COMMIT_MESSAGE),
            author_name=str(raw.get("author_name") or DEFAULT_AUTHOR_NAME),
            author_email=str(raw.get("author_email") or DEFAULT_AUTHOR_EMAIL),
            state_file=str(raw.get("state_file") or DEFAULT_STATE_FILE).strip(),
        )

    def resolve_token(self, env: Optional[Mapping[str, str]] = None) -> str:
        """Return the configured token, falling back to ``token_env``."""

        if self.token:
            return self.token
        env_source = os.environ if env is None else env
        return env_source.get(self.token_env, "").strip() if self.token_env else ""

    def missing_fields(self, env: Optional[Mapping[str, str]] = None) -> List[str]:
        missing: List[str] = []
        if not self.resolve_token(env):
            missing.append(f"token (publish.token or ${self.token_env})")
        if not self.repository_url:
            missing.append("publish.repository_url")
        if not self.branch:
            missing.append("publish.branch")
        return missing

    def is_complete(self, env: Optional[Mapping[str, str]] = None) -> bool:
        return not self.missing_fields(env)

    def validate(self, env: Optional[Mapping[str, str]] = None) -> RepositoryTarget:
        """Check required settings and parse the repository URL."""

        missing = self.missing_fields(env)
        if missing:
            raise ConfigurationError("missing publish settings: " + ", ".join(missing))
        return parse_repository_url(self.repository_url)

    def effective_api_url(self, target: RepositoryTarget) -> str:
        return self.api_url or target.default_api_url()

    @property
    def identity(self) -> Dict[str, str]:
        return {"name": self.author_name, "email": self.author_email}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository_url": self.repository_url,
            "branch": self.branch,
            "folder": self.folder,
            "selected_paths": list(self.selected_paths),
            "interval_minutes": self.interval_minutes,
            "token_env": self.token_env,
            "api_url": self.api_url,
            "timeout": self.timeout,
            "read_workers": self.read_workers,
            "commit_message": self.commit_message,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "state_file": self.state_file,
        }


__all__ = [
    "PublishSettings",
    "RepositoryTarget",
    "parse_repository_url",
    "DEFAULT_BRANCH",
    "DEFAULT_STATE_FILE",
]
