"""
Capability index.

Flattens the registry (DBus services, MCP agents, skills) into one ordered list of
:class:`~opdbus.core.schema.ToolDescriptor`.  The ordering is DBus methods first, then agent
capabilities, then skills, each in registry order, so two planning cycles over an unchanged
registry see the exact same tool list.
"""

import logging
import re
from typing import (
    Dict,
    Iterator,
    List,
    Sequence,
)

from opdbus.core.schema import (
    DBusService,
    ExecutionProfile,
    MCPAgent,
    Skill,
    SourceKind,
    ToolDescriptor,
)

logger = logging.getLogger(__name__)

SYSTEM_PROFILE_LABEL = "System"
FALLBACK_PROFILE_LABEL = "Standard"

_PROFILE_PREFIX = re.compile(r"^\[[^\]]*\]\s+")


def _profile_label(profile_id: str | None, profiles: Sequence[ExecutionProfile]) -> str:
    for profile in profiles:
        if profile.id == profile_id:
            return profile.name
    return FALLBACK_PROFILE_LABEL


def _dbus_tools(services: Sequence[DBusService]) -> Iterator[ToolDescriptor]:
    for service in services:
        for obj in service.objects:
            for iface in obj.interfaces:
                for method in iface.methods:
                    args = ", ".join(
                        f"{arg.name}: {arg.type}" for arg in method.args if arg.direction == "in"
                    )
                    signature = f"{method.name}({args})"
                    yield ToolDescriptor(
                        profile_label=SYSTEM_PROFILE_LABEL,
                        qualified_name=f"DBUS: {service.name} {iface.name}.{signature}",
                        signature=signature,
                        source_kind=SourceKind.DBUS_METHOD,
                        owner=service.name,
                    )


def _agent_tools(
    agents: Sequence[MCPAgent], profiles: Sequence[ExecutionProfile]
) -> Iterator[ToolDescriptor]:
    for agent in agents:
        if agent.status != "connected":
            continue
        label = _profile_label(agent.execution_profile_id, profiles)
        for capability in agent.capabilities:
            yield ToolDescriptor(
                profile_label=label,
                qualified_name=f"AGENT [{agent.name}]: {capability}",
                signature=capability,
                source_kind=SourceKind.AGENT_CAPABILITY,
                owner=agent.name,
            )


def _skill_tools(
    skills: Sequence[Skill], profiles: Sequence[ExecutionProfile]
) -> Iterator[ToolDescriptor]:
    for skill in skills:
        params = ", ".join(f"{name}: {kind}" for name, kind in skill.parameters.items())
        signature = f"{skill.name}({params})"
        yield ToolDescriptor(
            profile_label=_profile_label(skill.execution_profile_id, profiles),
            qualified_name=f"SKILL [{skill.category}]: {signature}",
            signature=signature,
            source_kind=SourceKind.SKILL,
            owner=skill.id,
            description=skill.description,
        )


def build_index(
    services: Sequence[DBusService],
    agents: Sequence[MCPAgent],
    skills: Sequence[Skill],
    profiles: Sequence[ExecutionProfile],
) -> List[ToolDescriptor]:
    """Return every invocable tool in deterministic order."""
    tools: List[ToolDescriptor] = []
    tools.extend(_dbus_tools(services))
    tools.extend(_agent_tools(agents, profiles))
    tools.extend(_skill_tools(skills, profiles))
    return tools


class CapabilityIndex:
    """An immutable tool list plus name resolution for one planning cycle."""

    def __init__(self, tools: Sequence[ToolDescriptor]):
        self._tools = tuple(tools)
        self._by_name: Dict[str, ToolDescriptor] = {}
        for tool in self._tools:
            if tool.qualified_name in self._by_name:
                logger.debug("Duplicate tool name '%s'; keeping the first", tool.qualified_name)
                continue
            self._by_name[tool.qualified_name] = tool

    @classmethod
    def build(
        cls,
        services: Sequence[DBusService],
        agents: Sequence[MCPAgent],
        skills: Sequence[Skill],
        profiles: Sequence[ExecutionProfile],
    ) -> "CapabilityIndex":
        return cls(build_index(services, agents, skills, profiles))

    @property
    def tools(self) -> tuple[ToolDescriptor, ...]:
        return self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools)

    def prompt_lines(self) -> List[str]:
        return [tool.prompt_line() for tool in self._tools]

    def resolve(self, name: str) -> ToolDescriptor | None:
        """
        Find the descriptor a call step refers to.

        Accepts the bare qualified name as well as the full prompt rendering
        (``[Profile] qualified name - description``), which planners tend to echo back.
        """
        name = name.strip()
        if name in self._by_name:
            return self._by_name[name]

        stripped = _PROFILE_PREFIX.sub("", name, count=1)
        if stripped in self._by_name:
            return self._by_name[stripped]

        for tool in self._tools:
            if tool.description and stripped == f"{tool.qualified_name} - {tool.description}":
                return tool
        return None
