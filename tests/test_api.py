"""Tests for the HTTP API."""

import json

import pytest
from conftest import UnreachableRegistry
from fastapi import BackgroundTasks
from fastapi.testclient import TestClient

from opdbus.agent.plan_runner import CANCELLED
from opdbus.api.app import create_app
from opdbus.api.models import RunRequest
from opdbus.core.steps import RunOutcome
from opdbus.providers.registry import ProviderRegistry
from opdbus.providers.stub import StubProvider
from opdbus.registry.store import InMemoryRegistry


def _providers() -> ProviderRegistry:
    return ProviderRegistry(
        "stub",
        {"stub": StubProvider(chunk_delay=0), "alt": StubProvider("alt", chunk_delay=0)},
    )


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app(InMemoryRegistry(), _providers(), step_delay=0.0))


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_registry_views(client: TestClient) -> None:
    services = client.get("/registry/services").json()
    tools = client.get("/registry/tools").json()
    context = client.get("/registry/context").json()

    assert services[0]["name"] == "org.freedesktop.systemd1"
    assert tools[0]["source_kind"] == "DBUS_METHOD"
    assert all("QA Automation" not in t["qualified_name"] for t in tools)
    assert context["registry_version"] == 0
    assert context["context"].startswith("[SYSTEM STATE SNAPSHOT]")


def test_run_to_completion(client: TestClient) -> None:
    resp = client.post("/runs", json={"task": "start systemd unit"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["state"] == "completed"
    assert body["outcome"] == "succeeded"
    assert [s["kind"] for s in body["steps"]] == ["thought", "call", "result"]
    assert body["steps"][2]["call_id"] == body["steps"][1]["id"]

    session = client.get(f"/sessions/{body['session_id']}").json()
    assert [r["role"] for r in session["history"]] == ["user", "assistant"]


def test_stream_run(client: TestClient) -> None:
    session_id = client.post("/sessions").json()["session_id"]

    with client.stream(
        "POST", "/runs/stream", json={"task": "start systemd unit", "session_id": session_id}
    ) as resp:
        assert resp.status_code == 200
        assert resp.headers["x-session-id"] == session_id
        steps = [json.loads(line) for line in resp.iter_lines() if line]

    assert [s["kind"] for s in steps] == ["thought", "call", "result"]
    assert client.get("/sessions").json() == [session_id]


@pytest.mark.parametrize("task", ["", "   "])
def test_blank_task_is_422(client: TestClient, task: str) -> None:
    resp = client.post("/runs", json={"task": task})

    assert resp.status_code == 422
    assert client.get("/sessions").json() == []


def test_unknown_provider_and_session(client: TestClient) -> None:
    assert client.post("/runs", json={"task": "x", "provider_id": "nope"}).status_code == 404
    assert client.get("/sessions/missing").status_code == 404


def test_select_provider(client: TestClient) -> None:
    assert client.get("/providers").json() == {
        "active": "stub",
        "default": "stub",
        "providers": ["stub", "alt"],
    }

    resp = client.post("/providers/select", json={"provider_id": "alt"})
    assert resp.json()["active"] == "alt"
    assert client.post("/providers/select", json={"provider_id": "nope"}).status_code == 404

    steps = client.post("/runs", json={"task": "start systemd unit"}).json()["steps"]
    assert steps[0]["content"].startswith("[alt]")


def test_connect_agent(client: TestClient) -> None:
    resp = client.post("/agents/connect", json={"url": "http://localhost:9100"})

    assert resp.status_code == 200
    assert resp.json()["name"] == "New Agent (9100)"
    assert client.get("/registry/version").json() == {"version": 1}
    names = [t["qualified_name"] for t in client.get("/registry/tools").json()]
    assert "AGENT [New Agent (9100)]: discovered_new_tool" in names

    bad = client.post("/agents/connect", json={"url": "localhost"})
    assert bad.status_code == 422
    assert "Invalid agent URL" in bad.json()["detail"]


def test_explain_interface(client: TestClient) -> None:
    resp = client.post(
        "/explain",
        json={
            "service": "org.freedesktop.systemd1",
            "interface": "org.freedesktop.systemd1.Manager",
        },
    )

    assert resp.status_code == 200
    assert resp.json()["explanation"].startswith("[Mock stub]")

    missing = client.post("/explain", json={"service": "org.freedesktop.systemd1", "interface": "x"})
    assert missing.status_code == 404


def test_deployment_log(client: TestClient) -> None:
    resp = client.post("/deploy/logs", json={"port": 9090})

    assert resp.status_code == 200
    assert resp.text.splitlines() == [
        "Initializing...",
        "Mocking deployment to /usr/local/bin/op-dbus-v2 (port 9090)...",
        "Done.",
    ]


def test_unreachable_registry_is_503() -> None:
    client = TestClient(create_app(UnreachableRegistry(), _providers(), step_delay=0.0))

    resp = client.post("/runs", json={"task": "start systemd unit"})

    assert resp.status_code == 503
    assert resp.json() == {"detail": "registry offline"}


def test_agent_status_and_removal(client: TestClient) -> None:
    resp = client.post("/agents/agent-qa/status", json={"status": "connected"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "connected"
    names = [t["qualified_name"] for t in client.get("/registry/tools").json()]
    assert any("QA Automation" in n for n in names)

    assert client.delete("/agents/agent-qa").json() == {"removed": "agent-qa"}
    assert "agent-qa" not in {a["id"] for a in client.get("/registry/agents").json()}
    assert client.get("/registry/version").json() == {"version": 2}

    assert client.delete("/agents/agent-qa").status_code == 404
    assert client.post("/agents/agent-qa/status", json={"status": "connected"}).status_code == 404
    assert client.post("/agents/agent-docker/status", json={"status": "gone"}).status_code == 422


def test_agent_mutations_need_writable_registry() -> None:
    client = TestClient(create_app(UnreachableRegistry(), _providers(), step_delay=0.0))

    assert client.delete("/agents/agent-qa").status_code == 409
    assert client.post("/agents/agent-qa/status", json={"status": "connected"}).status_code == 409


@pytest.mark.asyncio
async def test_unread_stream_closes_run_as_aborted() -> None:
    app = create_app(InMemoryRegistry(), _providers(), step_delay=0.0)
    (route,) = [r for r in app.routes if getattr(r, "path", None) == "/runs/stream"]
    cleanup = BackgroundTasks()

    # The response is built but its body is never sent, as when the client hangs up at once.
    await route.endpoint(RunRequest(task="start systemd unit"), cleanup)
    await cleanup()

    orchestrator = app.state.orchestrator
    (session_id,) = orchestrator.list_sessions()
    session = orchestrator.get_session(session_id)
    user, assistant = session.history
    assert user.closed
    assert assistant.closed
    assert [s.content for s in assistant.steps] == [CANCELLED]
    assert session.runs[0].outcome is RunOutcome.ABORTED
