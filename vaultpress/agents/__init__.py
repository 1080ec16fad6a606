"""Agent implementations for the vaultpress runtime."""

from .publish import run_publish_agent
from .registry import AgentDefinition, AgentRegistry

REGISTRY = AgentRegistry()
REGISTRY.register(
    AgentDefinition(
        name="publish.agent",
        description="Report publish readiness and the last successful publish.",
        handler=run_publish_agent,
    )
)

__all__ = [
    "REGISTRY",
    "AgentDefinition",
    "AgentRegistry",
]
