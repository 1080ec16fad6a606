"""Persisted record of the last successful publish."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger("vaultpress.publish.state")


@dataclass
class PublishState:
    last_success: Optional[datetime] = None
    last_commit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "last_commit": self.last_commit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PublishState":
        raw_success = data.get("last_success")
        last_success = datetime.fromisoformat(raw_success) if raw_success else None
        return cls(last_success=last_success, last_commit=data.get("last_commit") or None)


class PublishStateStore:
    """JSON file holding the :class:`PublishState` between runs."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> PublishState:
        if not self.path.exists():
            return PublishState()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return PublishState.from_dict(data)
        except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.error("Failed to load publish state from %s: %s", self.path, e)
            return PublishState()

    def save(self, state: PublishState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=2)
        logger.debug("Saved publish state to %s", self.path)


__all__ = ["PublishState", "PublishStateStore"]
