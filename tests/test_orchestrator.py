"""Tests for session bookkeeping on top of the plan runner."""

import pytest
from conftest import (
    GET_UNIT,
    ScriptedProvider,
)

from opdbus.agent.orchestrator import Orchestrator
from opdbus.agent.plan_runner import PlanRunner
from opdbus.core.errors import ValidationError
from opdbus.core.steps import (
    CallStep,
    ThoughtStep,
)


@pytest.fixture
def orchestrator(systemd_registry, provider_table) -> Orchestrator:
    return Orchestrator(PlanRunner(systemd_registry, provider_table, step_delay=0.0))


@pytest.mark.asyncio
async def test_submit_records_request_and_answer(
    orchestrator: Orchestrator, scripted: ScriptedProvider
) -> None:
    scripted.plan = [ThoughtStep(content="checking"), CallStep(tool_name=GET_UNIT)]

    session, run = await orchestrator.submit("check systemd status")
    async for _ in run.steps():
        pass

    request, answer = session.history
    assert request.role == "user"
    assert request.closed
    assert [s.content for s in request.steps] == ["check systemd status"]
    assert answer is run.record
    assert answer.role == "assistant"
    assert [s.kind for s in answer.steps] == ["thought", "call", "result"]


@pytest.mark.asyncio
async def test_sessions_accumulate_history(
    orchestrator: Orchestrator, scripted: ScriptedProvider
) -> None:
    scripted.plan = [ThoughtStep(content="noted")]

    session, _ = await orchestrator.submit("first")
    same, _ = await orchestrator.submit("second", session_id=session.id)
    other, _ = await orchestrator.submit("third", session_id="unknown")

    assert same is session
    assert len(session.history) == 4
    assert len(session.runs) == 2
    assert other.id != session.id
    assert orchestrator.list_sessions() == [session.id, other.id]


@pytest.mark.asyncio
async def test_rejected_task_leaves_history_untouched(orchestrator: Orchestrator) -> None:
    session = orchestrator.create_session()

    with pytest.raises(ValidationError):
        await orchestrator.submit("   ", session_id=session.id)

    assert session.history == []


def test_get_session_unknown(orchestrator: Orchestrator) -> None:
    with pytest.raises(KeyError):
        orchestrator.get_session("missing")
