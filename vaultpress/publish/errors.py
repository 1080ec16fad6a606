"""Exceptions raised while publishing a vault selection."""

from __future__ import annotations

from typing import Optional


class PublishError(RuntimeError):
    """Base class for every publish failure."""


class ConfigurationError(PublishError):
    """Publish settings are incomplete or malformed."""


class LocalReadError(PublishError):
    """A selected vault path could not be read."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"cannot read '{path}': {reason}")


class RemoteApiError(PublishError):
    """A GitHub API call failed or returned an unusable response."""

    def __init__(self, call: str, message: str, status: Optional[int] = None) -> None:
        self.call = call
        self.status = status
        self.message = message
        prefix = f"{call} failed"
        if status is not None:
            prefix += f" (HTTP {status})"
        super().__init__(f"{prefix}: {message}")


__all__ = ["PublishError", "ConfigurationError", "LocalReadError", "RemoteApiError"]
