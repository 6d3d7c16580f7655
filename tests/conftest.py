"""Pytest configuration and fixtures for opdbus orchestration tests."""

import asyncio
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
    Mapping,
    Sequence,
)

import pytest

from opdbus.core.errors import RegistryUnavailable
from opdbus.core.schema import (
    DBusInterface,
    DBusMethod,
    DBusMethodArg,
    DBusObject,
    DBusService,
    DeploymentConfig,
    ExecutionProfile,
    MCPAgent,
    Plugin,
    Skill,
    ToolDescriptor,
)
from opdbus.core.steps import PlanStep
from opdbus.providers.base import BaseProvider
from opdbus.providers.registry import ProviderRegistry
from opdbus.registry.store import (
    InMemoryRegistry,
    RegistryClient,
)

GET_UNIT = "DBUS: org.freedesktop.systemd1 org.freedesktop.systemd1.Manager.GetUnit(name: s)"


class ScriptedProvider(BaseProvider):
    """Provider that replays a fixed plan and canned tool payloads."""

    def __init__(
        self,
        provider_id: str = "scripted",
        plan: Sequence[PlanStep] | BaseException = (),
        results: Mapping[str, str | BaseException] | None = None,
        chunks: Sequence[str | BaseException] = (),
        tolerant: bool = False,
    ):
        super().__init__(provider_id)
        self.plan = plan
        self.results = dict(results or {})
        self.chunks = list(chunks)
        self.tolerates_unknown_tools = tolerant  # type: ignore[misc]
        self.plan_calls: List[Dict[str, Any]] = []
        self.tool_calls: List[Dict[str, Any]] = []
        self.gate: asyncio.Event | None = None

    async def generate_text(self, prompt: str) -> str:
        return f"{self.id}: {prompt}"

    async def generate_plan(
        self, task: str, tools: Sequence[ToolDescriptor], context: str
    ) -> List[PlanStep]:
        self.plan_calls.append({"task": task, "tools": list(tools), "context": context})
        if isinstance(self.plan, BaseException):
            raise self.plan
        return list(self.plan)

    async def execute_tool(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        context: str,
        profile: ExecutionProfile | None = None,
    ) -> str:
        self.tool_calls.append(
            {"tool": tool_name, "args": dict(args), "context": context, "profile": profile}
        )
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.results.get(tool_name, f"ok:{tool_name}")
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def _stream_chunks(self, config: DeploymentConfig) -> AsyncIterator[str]:
        for chunk in self.chunks:
            if isinstance(chunk, BaseException):
                raise chunk
            yield chunk


class UnreachableRegistry(RegistryClient):
    """Registry whose every read fails on transport."""

    async def fetch_services(self) -> List[DBusService]:
        raise RegistryUnavailable("registry offline")

    async def fetch_agents(self) -> List[MCPAgent]:
        raise RegistryUnavailable("registry offline")

    async def fetch_skills(self) -> List[Skill]:
        raise RegistryUnavailable("registry offline")

    async def fetch_profiles(self) -> List[ExecutionProfile]:
        raise RegistryUnavailable("registry offline")

    async def fetch_plugins(self) -> List[Plugin]:
        raise RegistryUnavailable("registry offline")

    async def version(self) -> int:
        raise RegistryUnavailable("registry offline")


# ---------------------------------------------------------------------------
# Registry fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def systemd_service() -> DBusService:
    return DBusService(
        id="1",
        name="org.freedesktop.systemd1",
        status="active",
        objects=[
            DBusObject(
                path="/org/freedesktop/systemd1",
                interfaces=[
                    DBusInterface(
                        name="org.freedesktop.systemd1.Manager",
                        methods=[
                            DBusMethod(
                                name="GetUnit",
                                args=[
                                    DBusMethodArg(name="name", type="s", direction="in"),
                                    DBusMethodArg(name="unit", type="o", direction="out"),
                                ],
                            )
                        ],
                    )
                ],
            )
        ],
    )


@pytest.fixture
def profiles() -> List[ExecutionProfile]:
    return [
        ExecutionProfile(
            id="profile-fast",
            name="Fast",
            model_preferences=["fast-model"],
            timeout_ms=1000,
            max_retries=0,
        ),
        ExecutionProfile(id="profile-deep", name="Deep", model_preferences=["deep-model"]),
    ]


@pytest.fixture
def agents() -> List[MCPAgent]:
    return [
        MCPAgent(
            id="agent-docker",
            name="Docker",
            url="http://localhost:8081",
            status="connected",
            capabilities=["list_containers", "build_image"],
            execution_profile_id="profile-fast",
        ),
        MCPAgent(
            id="agent-qa",
            name="QA",
            url="http://localhost:8086",
            status="disconnected",
            capabilities=["run_selenium"],
            execution_profile_id="profile-deep",
        ),
    ]


@pytest.fixture
def skills() -> List[Skill]:
    return [
        Skill(
            id="skill-1",
            name="Log Analysis",
            category="analysis",
            description="Analyzes system logs for errors.",
            parameters={"logSource": "string", "lines": "number"},
            execution_profile_id="profile-deep",
        ),
        Skill(id="skill-2", name="UUID Generator", category="utility", parameters={"count": "number"}),
    ]


@pytest.fixture
def systemd_registry(systemd_service: DBusService) -> InMemoryRegistry:
    """One active service exposing ``GetUnit`` and no agents or skills."""
    return InMemoryRegistry(
        services=[systemd_service], agents=[], skills=[], profiles=[], plugins=[]
    )


@pytest.fixture
def full_registry(
    systemd_service: DBusService,
    agents: List[MCPAgent],
    skills: List[Skill],
    profiles: List[ExecutionProfile],
) -> InMemoryRegistry:
    return InMemoryRegistry(
        services=[systemd_service], agents=agents, skills=skills, profiles=profiles, plugins=[]
    )


# ---------------------------------------------------------------------------
# Provider fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def scripted() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def provider_table(scripted: ScriptedProvider) -> ProviderRegistry:
    return ProviderRegistry("scripted", {"scripted": scripted})
