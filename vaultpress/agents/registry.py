"""Startup agents: checks that run once after the configuration loads.

Each agent returns a small status record (``status`` plus ``detail``) that
``/status`` shows next to the publish target. Agents can be switched off with
``agents.disabled`` or restricted with ``agents.enabled`` in the config.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Callable, Dict, Optional, Sequence, Set

from ..configuration import ConfigurationBundle, Diagnostic

logger = logging.getLogger("vaultpress.agents")

AgentHandler = Callable[[ConfigurationBundle], Any]
AgentRecord = Dict[str, Any]


@dataclass(frozen=True)
class AgentDefinition:
    name: str
    description: str
    handler: AgentHandler
    default_enabled: bool = True

    @property
    def key(self) -> str:
        return self.name.strip().lower()


def _names(raw: Any) -> Set[str]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return set()
    return {str(item).strip().lower() for item in raw if str(item).strip()}


def _as_record(result: Any) -> AgentRecord:
    if result is None:
        return {"status": "ok"}
    if hasattr(result, "to_dict"):
        return dict(result.to_dict())
    if isinstance(result, dict):
        return dict(result)
    return {"status": "ok", "detail": str(result)}


class AgentRegistry:
    """Named startup agents, run in registration order."""

    def __init__(self) -> None:
        self._agents: Dict[str, AgentDefinition] = {}

    def register(self, definition: AgentDefinition) -> None:
        if not definition.key:
            raise ValueError("Agent name cannot be empty.")
        self._agents[definition.key] = definition
        logger.debug("Registered agent '%s'.", definition.key)

    def definitions(self) -> Sequence[AgentDefinition]:
        return list(self._agents.values())

    def definition(self, name: str) -> Optional[AgentDefinition]:
        return self._agents.get(name.strip().lower())

    def is_enabled(self, definition: AgentDefinition, bundle: ConfigurationBundle) -> bool:
        agents_cfg = (bundle.merged or {}).get("agents") or {}
        allowed = _names(agents_cfg.get("enabled"))
        if allowed:
            return definition.key in allowed
        if definition.key in _names(agents_cfg.get("disabled")):
            return False
        return definition.default_enabled

    def run(self, bundle: ConfigurationBundle) -> Dict[str, AgentRecord]:
        """Run every enabled agent and return its record keyed by agent name.

        An invalid configuration skips the handlers but still records why, and
        an agent that raises is reported as ``error`` with a diagnostic.
        """

        ran_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        records: Dict[str, AgentRecord] = {}
        for definition in self._agents.values():
            if not self.is_enabled(definition, bundle):
                logger.info("Agent '%s' disabled in configuration.", definition.name)
                continue

            if bundle.status == "invalid":
                record: AgentRecord = {
                    "status": "skipped",
                    "detail": "configuration is invalid; see diagnostics",
                }
            else:
                try:
                    record = _as_record(definition.handler(bundle))
                except Exception as exc:
                    logger.exception("Agent '%s' failed.", definition.name)
                    bundle.diagnostics.append(
                        Diagnostic(level="error", message=f"Agent '{definition.name}' failed: {exc}")
                    )
                    record = {"status": "error", "detail": str(exc)}

            record["ran_at"] = ran_at
            records[definition.name] = record
        return records


__all__ = ["AgentDefinition", "AgentRecord", "AgentRegistry"]
