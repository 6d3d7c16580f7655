"""
Pydantic models for opdbus API requests and responses.
This module defines the request and response schemas used by the opdbus API.
"""

from typing import (
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from opdbus.core.steps import (
    PlanStep,
    RunOutcome,
    RunRecord,
    RunState,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class SessionResponse(BaseModel):
    """Response with session information."""

    session_id: str
    history: List[RunRecord] = Field(default_factory=list)


class RunRequest(BaseModel):
    """Incoming task."""

    task: str = Field(..., description="Free-form task for the orchestrator")
    session_id: Optional[str] = Field(None, description="Session ID for conversation context")
    provider_id: Optional[str] = Field(None, description="Provider to plan with (default: active)")


class RunResponse(BaseModel):
    """A completed run, returned to the caller."""

    session_id: str
    run_id: str
    state: RunState
    outcome: Optional[RunOutcome] = None
    steps: List[PlanStep]


class ConnectAgentRequest(BaseModel):
    url: str = Field(..., description="Base URL of the MCP agent")


class AgentStatusRequest(BaseModel):
    status: Literal["connected", "disconnected"]


class SelectProviderRequest(BaseModel):
    provider_id: str


class ProvidersResponse(BaseModel):
    active: str
    default: str
    providers: List[str]


class ExplainRequest(BaseModel):
    """Ask the active provider to explain one interface of a DBus service."""

    service: str = Field(..., description="Bus name, e.g. org.freedesktop.systemd1")
    interface: str = Field(..., description="Interface name, e.g. org.freedesktop.systemd1.Manager")


class ExplainResponse(BaseModel):
    explanation: str


class ContextResponse(BaseModel):
    registry_version: int
    context: str
