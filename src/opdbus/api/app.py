"""
Core API backend for opdbus.

This module exposes the orchestration planner over HTTP:
- **GET /health**           - liveness probe for health checks.
- **GET /registry/...**     - registry collections, the flattened tool list and the context text.
- **POST /agents/connect**  - register a newly discovered MCP agent.
- **DELETE /agents/{id}**   - forget an agent; **POST /agents/{id}/status** to flip its status.
- **GET/POST /providers**   - list providers / switch the active one.
- **POST /sessions**        - create a new session; **GET /sessions[/{id}]** to inspect them.
- **POST /runs**            - run a task to completion and return every step.
- **POST /runs/stream**     - run a task and stream steps as NDJSON while they happen.
- **POST /explain**         - explain a DBus interface.
- **POST /deploy/logs**     - stream a deployment log, one complete line at a time.
"""

import logging
from typing import (
    AsyncIterator,
    List,
)

from fastapi import (
    BackgroundTasks,
    FastAPI,
    HTTPException,
    Request,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import (
    JSONResponse,
    StreamingResponse,
)

from opdbus.agent.explain import explain_interface
from opdbus.agent.orchestrator import (
    Orchestrator,
    Session,
)
from opdbus.agent.plan_runner import (
    PlanRunner,
    Run,
)
from opdbus.api.models import (
    AgentStatusRequest,
    ConnectAgentRequest,
    ContextResponse,
    ExplainRequest,
    ExplainResponse,
    ProvidersResponse,
    RunRequest,
    RunResponse,
    SelectProviderRequest,
    SessionResponse,
)
from opdbus.capabilities.context import snapshot as context_snapshot
from opdbus.capabilities.index import build_index
from opdbus.common import (
    AnsiColors,
    colored_print,
)
from opdbus.config import settings
from opdbus.core.errors import (
    ProviderError,
    RegistryUnavailable,
    ValidationError,
)
from opdbus.core.schema import (
    DBusInterface,
    DBusService,
    DeploymentConfig,
    ExecutionProfile,
    MCPAgent,
    Plugin,
    Skill,
    ToolDescriptor,
)
from opdbus.providers.registry import ProviderRegistry
from opdbus.registry.http import HttpRegistryClient
from opdbus.registry.store import (
    InMemoryRegistry,
    RegistryClient,
    capture_snapshot,
)
from opdbus.streaming.lines import iter_lines

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------
def default_registry() -> RegistryClient:
    """Remote registry when ``REGISTRY_URL`` is set, otherwise the seeded in-memory one."""
    if settings.REGISTRY_URL:
        return HttpRegistryClient(settings.REGISTRY_URL)
    return InMemoryRegistry(latency=settings.REGISTRY_LATENCY_SECONDS)


def _find_interface(services: List[DBusService], service: str, interface: str) -> DBusInterface:
    for svc in services:
        if svc.name != service:
            continue
        for obj in svc.objects:
            for iface in obj.interfaces:
                if iface.name == interface:
                    return iface
    raise HTTPException(status_code=404, detail=f"Interface '{interface}' not found on '{service}'")


def _run_response(session_id: str, run: Run) -> RunResponse:
    return RunResponse(
        session_id=session_id,
        run_id=run.id,
        state=run.state,
        outcome=run.outcome,
        steps=list(run.record.steps),
    )


def create_app(
    registry: RegistryClient | None = None,
    providers: ProviderRegistry | None = None,
    step_delay: float | None = None,
) -> FastAPI:
    """Build the API around *registry* and *providers* (defaults come from settings)."""
    registry = registry or default_registry()
    providers = providers or ProviderRegistry.from_settings(settings)
    orchestrator = Orchestrator(PlanRunner(registry, providers, step_delay=step_delay))

    app = FastAPI(title="opdbus API", version="0.1.0", description="opdbus orchestration planner")
    app.state.registry = registry
    app.state.providers = providers
    app.state.orchestrator = orchestrator

    # Add CORS middleware to allow requests from a local dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[f"http://localhost:{settings.API_PORT}"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Error mapping
    # -----------------------------------------------------------------------
    @app.exception_handler(ValidationError)
    async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(RegistryUnavailable)
    async def _registry_unavailable(_: Request, exc: RegistryUnavailable) -> JSONResponse:
        logger.warning("Registry unavailable: %s", exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(ProviderError)
    async def _provider_error(_: Request, exc: ProviderError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": exc.message})

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    @app.get("/health", summary="Health check")
    async def health() -> dict[str, str]:
        """Return a simple liveness payload."""
        return {"status": "ok"}

    @app.get("/registry/version", summary="Registry version counter")
    async def registry_version() -> dict[str, int]:
        return {"version": await registry.version()}

    @app.get("/registry/services", response_model=List[DBusService])
    async def registry_services() -> List[DBusService]:
        return await registry.fetch_services()

    @app.get("/registry/agents", response_model=List[MCPAgent])
    async def registry_agents() -> List[MCPAgent]:
        return await registry.fetch_agents()

    @app.get("/registry/skills", response_model=List[Skill])
    async def registry_skills() -> List[Skill]:
        return await registry.fetch_skills()

    @app.get("/registry/profiles", response_model=List[ExecutionProfile])
    async def registry_profiles() -> List[ExecutionProfile]:
        return await registry.fetch_profiles()

    @app.get("/registry/plugins", response_model=List[Plugin])
    async def registry_plugins() -> List[Plugin]:
        return await registry.fetch_plugins()

    @app.get("/registry/tools", response_model=List[ToolDescriptor], summary="Flattened tools")
    async def registry_tools() -> List[ToolDescriptor]:
        snap = await capture_snapshot(registry)
        return build_index(snap.services, snap.agents, snap.skills, snap.profiles)

    @app.get("/registry/context", response_model=ContextResponse, summary="Planner context")
    async def registry_context() -> ContextResponse:
        snap = await capture_snapshot(registry)
        return ContextResponse(
            registry_version=snap.version, context=context_snapshot(snap.services, snap.agents)
        )

    def _mutable_registry() -> InMemoryRegistry:
        if not isinstance(registry, InMemoryRegistry):
            raise HTTPException(status_code=409, detail="Registry is read-only")
        return registry

    @app.post("/agents/connect", response_model=MCPAgent, summary="Connect an MCP agent")
    async def connect_agent(req: ConnectAgentRequest) -> MCPAgent:
        return await _mutable_registry().connect_agent(req.url)

    @app.delete("/agents/{agent_id}", summary="Disconnect and forget an MCP agent")
    async def remove_agent(agent_id: str) -> dict[str, str]:
        if not _mutable_registry().remove_agent(agent_id):
            raise HTTPException(status_code=404, detail=f"Unknown agent '{agent_id}'")
        return {"removed": agent_id}

    @app.post("/agents/{agent_id}/status", response_model=MCPAgent, summary="Set agent status")
    async def set_agent_status(agent_id: str, req: AgentStatusRequest) -> MCPAgent:
        try:
            return _mutable_registry().set_agent_status(agent_id, req.status)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=f"Unknown agent '{agent_id}'") from exc

    @app.get("/providers", response_model=ProvidersResponse, summary="List providers")
    async def list_providers() -> ProvidersResponse:
        return ProvidersResponse(
            active=providers.active_id, default=providers.default_id, providers=providers.ids()
        )

    @app.post("/providers/select", response_model=ProvidersResponse, summary="Switch provider")
    async def select_provider(req: SelectProviderRequest) -> ProvidersResponse:
        try:
            providers.select(req.provider_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return await list_providers()

    @app.post("/sessions", response_model=SessionResponse, summary="Create a new session")
    async def create_session() -> SessionResponse:
        """Create a new conversation session."""
        return SessionResponse(session_id=orchestrator.create_session().id)

    @app.get("/sessions", response_model=List[str], summary="List active sessions")
    async def list_sessions() -> List[str]:
        """List all active session IDs."""
        return orchestrator.list_sessions()

    @app.get("/sessions/{session_id}", response_model=SessionResponse, summary="Session history")
    async def get_session(session_id: str) -> SessionResponse:
        try:
            session = orchestrator.get_session(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Unknown session") from exc
        return SessionResponse(session_id=session.id, history=session.history)

    async def _submit(req: RunRequest) -> tuple[Session, Run]:
        try:
            return await orchestrator.submit(req.task, req.session_id, req.provider_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    @app.post("/runs", response_model=RunResponse, summary="Run a task to completion")
    async def run_task(req: RunRequest) -> RunResponse:
        session, run = await _submit(req)
        async for _ in run.steps():
            pass
        return _run_response(session.id, run)

    @app.post("/runs/stream", summary="Run a task, streaming steps as NDJSON")
    async def stream_task(req: RunRequest, cleanup: BackgroundTasks) -> StreamingResponse:
        session, run = await _submit(req)
        # Runs once the response is over, including when the client left before the first step.
        cleanup.add_task(run.abort)

        async def body() -> AsyncIterator[str]:
            async for step in run.steps():
                yield step.model_dump_json() + "\n"

        return StreamingResponse(
            body(),
            media_type="application/x-ndjson",
            headers={"X-Session-Id": session.id, "X-Run-Id": run.id},
        )

    @app.post("/explain", response_model=ExplainResponse, summary="Explain a DBus interface")
    async def explain(req: ExplainRequest) -> ExplainResponse:
        services = await registry.fetch_services()
        iface = _find_interface(services, req.service, req.interface)
        return ExplainResponse(explanation=await explain_interface(iface, providers.active))

    @app.post("/deploy/logs", summary="Stream a deployment log line by line")
    async def deploy_logs(config: DeploymentConfig) -> StreamingResponse:
        provider = providers.active

        async def body() -> AsyncIterator[str]:
            async for line in iter_lines(provider.stream_log(config)):
                yield line + "\n"

        return StreamingResponse(body(), media_type="text/plain")

    return app


app = create_app()


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in dev docker-compose).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg‑import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting opdbus API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    logger.debug("API settings: %s", settings.model_dump())

    colored_print(f"🔮 opdbus API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "opdbus.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m opdbus.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
