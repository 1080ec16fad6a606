"""Publish agent reporting whether the vault is ready to publish."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from ..configuration import ConfigurationBundle
from ..publish import PublishSettings, PublishStateStore
from ..publish.errors import ConfigurationError
from ..publish.runtime import state_path

logger = logging.getLogger("vaultpress.agents.publish")


@dataclass
class PublishAgentResult:
    """Summary data returned after the publish agent runs."""

    status: Literal["ok", "pending", "disabled", "error"]
    detail: str
    repository: str = ""
    branch: str = ""
    folder: str = ""
    selected_paths: int = 0
    interval_minutes: float = 0
    last_success: Optional[str] = None
    last_commit: Optional[str] = None
    missing: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "detail": self.detail,
            "repository": self.repository,
            "branch": self.branch,
            "folder": self.folder,
            "selected_paths": self.selected_paths,
            "interval_minutes": self.interval_minutes,
            "last_success": self.last_success,
            "last_commit": self.last_commit,
            "missing": self.missing,
        }


def run_publish_agent(bundle: ConfigurationBundle) -> PublishAgentResult:
    """Check publish settings and report the last recorded publish."""

    settings = PublishSettings.from_config(bundle.merged)

    if not settings.repository_url and not settings.selected_paths:
        detail = "publish.agent idle: no repository or selection configured."
        logger.info(detail)
        return PublishAgentResult(status="disabled", detail=detail)

    state = PublishStateStore(state_path(bundle.vault_dir, settings)).load()
    last_success = state.last_success.isoformat() if state.last_success else None

    result = PublishAgentResult(
        status="ok",
        detail="",
        repository=settings.repository_url,
        branch=settings.branch,
        folder=settings.folder or "(repository root)",
        selected_paths=len(settings.selected_paths),
        interval_minutes=settings.interval_minutes,
        last_success=last_success,
        last_commit=state.last_commit,
    )

    missing = settings.missing_fields()
    if missing:
        result.status = "pending"
        result.missing = missing
        result.detail = "Missing " + ", ".join(missing)
        logger.info("publish.agent pending: %s", result.detail)
        return result

    try:
        target = settings.validate()
    except ConfigurationError as exc:
        result.status = "error"
        result.detail = str(exc)
        logger.error("publish.agent: %s", exc)
        return result

    when = last_success or "never"
    result.detail = (
        f"{target.slug}@{settings.branch}: {result.selected_paths} selected, "
        f"last success {when}"
    )
    logger.info("publish.agent completed: %s", result.detail)
    return result


__all__ = ["PublishAgentResult", "run_publish_agent"]
