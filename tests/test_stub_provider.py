"""Tests for the deterministic stub provider, alone and behind the runner."""

import json

import pytest

from opdbus.agent.plan_runner import PlanRunner
from opdbus.capabilities.index import CapabilityIndex
from opdbus.core.schema import DeploymentConfig
from opdbus.core.steps import (
    CallStep,
    RunOutcome,
    ThoughtStep,
)
from opdbus.providers.registry import ProviderRegistry
from opdbus.providers.stub import StubProvider
from opdbus.registry import defaults
from opdbus.registry.store import InMemoryRegistry
from opdbus.streaming.lines import iter_lines

START_UNIT = (
    "DBUS: org.freedesktop.systemd1 org.freedesktop.systemd1.Manager.StartUnit(name: s, mode: s)"
)


@pytest.fixture
def stub() -> StubProvider:
    return StubProvider(chunk_delay=0)


@pytest.fixture
def tools():
    return CapabilityIndex.build(
        defaults.SERVICES, defaults.AGENTS, defaults.SKILLS, defaults.EXECUTION_PROFILES
    ).tools


@pytest.mark.asyncio
async def test_plan_calls_best_matching_tool(stub: StubProvider, tools) -> None:
    thought, call = await stub.generate_plan("start systemd unit", tools, "")

    assert isinstance(thought, ThoughtStep)
    assert isinstance(call, CallStep)
    assert call.tool_name == START_UNIT
    assert call.execution_profile == "System"


@pytest.mark.asyncio
async def test_plan_is_deterministic(stub: StubProvider, tools) -> None:
    first = await stub.generate_plan("scan for vulnerabilities in audit logs", tools, "")
    second = await stub.generate_plan("scan for vulnerabilities in audit logs", tools, "")

    assert [s.model_dump(exclude={"id", "created_at"}) for s in first] == [
        s.model_dump(exclude={"id", "created_at"}) for s in second
    ]


@pytest.mark.asyncio
async def test_no_match_yields_single_thought(stub: StubProvider, tools) -> None:
    (step,) = await stub.generate_plan("zz qq", tools, "")

    assert isinstance(step, ThoughtStep)


@pytest.mark.asyncio
async def test_mock_execution_payload(stub: StubProvider) -> None:
    payload = json.loads(await stub.execute_tool("anything", {"a": 1}, "ctx"))

    assert payload == {"status": "success", "mock_data": True, "tool": "anything", "args": {"a": 1}}
    assert stub.tolerates_unknown_tools


@pytest.mark.asyncio
async def test_deployment_log_lines(stub: StubProvider) -> None:
    config = DeploymentConfig(port=9090, install_path="/opt/op-dbus")

    lines = [line async for line in iter_lines(stub.stream_log(config))]

    assert lines == [
        "Initializing...",
        "Mocking deployment to /opt/op-dbus (port 9090)...",
        "Done.",
    ]


@pytest.mark.asyncio
async def test_end_to_end_with_seed_catalog(stub: StubProvider) -> None:
    runner = PlanRunner(
        InMemoryRegistry(), ProviderRegistry("stub", {"stub": stub}), step_delay=0.0
    )

    run = await runner.execute("start systemd unit")

    assert [s.kind for s in run.record.steps] == ["thought", "call", "result"]
    assert json.loads(run.record.steps[2].content)["tool"] == START_UNIT
    assert run.outcome is RunOutcome.SUCCEEDED
