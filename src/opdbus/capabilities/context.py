"""System-state summary handed to planners alongside the tool list."""

from typing import (
    List,
    Sequence,
)

from pydantic import (
    BaseModel,
    ConfigDict,
)

from opdbus.core.schema import (
    DBusService,
    MCPAgent,
)

INACTIVE_SERVICE_RULE = (
    "If a user asks to query a DBus service that is NOT active, you must attempt to start it "
    "first or report it as offline."
)


class ContextSnapshot(BaseModel):
    """Point-in-time view of active services and connected agents."""

    model_config = ConfigDict(frozen=True)

    active_services: List[str]
    connected_agents: List[str]

    def render(self) -> str:
        return "\n".join(
            [
                "[SYSTEM STATE SNAPSHOT]",
                f"Active DBus Services ({len(self.active_services)}): "
                + ", ".join(self.active_services),
                f"Connected MCP Agents ({len(self.connected_agents)}): "
                + ", ".join(self.connected_agents),
                "",
                "[ORCHESTRATION RULES]",
                f"1. {INACTIVE_SERVICE_RULE}",
            ]
        )


def build_context(services: Sequence[DBusService], agents: Sequence[MCPAgent]) -> ContextSnapshot:
    return ContextSnapshot(
        active_services=[s.name for s in services if s.status == "active"],
        connected_agents=[f"{a.name} ({a.url})" for a in agents if a.status == "connected"],
    )


def snapshot(services: Sequence[DBusService], agents: Sequence[MCPAgent]) -> str:
    """Summarize *services* and *agents* as planner context text."""
    return build_context(services, agents).render()
