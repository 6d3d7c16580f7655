"""
Plan steps and run records.

A plan step is a tagged variant discriminated by ``kind``.  Generators only ever produce
``thought`` and ``call`` steps (or a single degenerate ``error`` step); ``result`` and ``error``
steps are appended by the runner while it executes the plan.
"""

import uuid
from datetime import (
    datetime,
    timezone,
)
from enum import Enum
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    Field,
    TypeAdapter,
)


def new_step_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _StepBase(BaseModel):
    id: str = Field(default_factory=new_step_id, description="Opaque id, ordering/dedup only")
    created_at: datetime = Field(default_factory=utcnow)


class ThoughtStep(_StepBase):
    """Informational reasoning text, no side effect."""

    kind: Literal["thought"] = "thought"
    content: str


class CallStep(_StepBase):
    """A requested tool invocation."""

    kind: Literal["call"] = "call"
    tool_name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    content: str = ""
    execution_profile: Optional[str] = None


class ResultStep(_StepBase):
    """Raw payload returned by the executor for the call identified by ``call_id``."""

    kind: Literal["result"] = "result"
    content: str
    call_id: str


class ErrorStep(_StepBase):
    """Terminal failure of its originating step (or of the whole run)."""

    kind: Literal["error"] = "error"
    content: str
    call_id: Optional[str] = None


PlanStep = Annotated[
    Union[ThoughtStep, CallStep, ResultStep, ErrorStep],
    Field(discriminator="kind"),
]

plan_step_adapter: TypeAdapter[PlanStep] = TypeAdapter(PlanStep)


class RunState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"


class RunOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABORTED = "aborted"


class RunRecord(BaseModel):
    """
    Ordered steps for either the originating request or one assistant turn.

    The record is append-only while its run is live and frozen once :meth:`close` is called.
    """

    role: Literal["user", "assistant"]
    steps: List[PlanStep] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    @property
    def closed(self) -> bool:
        return self.completed_at is not None

    def append(self, step: PlanStep) -> PlanStep:
        """Append *step* and return it; raise if the record is already closed."""
        if self.closed:
            raise RuntimeError("Run record is closed; steps can no longer be appended.")
        self.steps.append(step)
        return step

    def close(self) -> None:
        if not self.closed:
            self.completed_at = utcnow()

    @property
    def last_kind(self) -> str | None:
        return self.steps[-1].kind if self.steps else None
