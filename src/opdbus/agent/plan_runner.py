"""
Plan runner: the orchestration state machine.

A run moves ``IDLE -> PLANNING -> EXECUTING -> COMPLETED``.  It captures everything it needs
(registry snapshot, capability index, context text, provider binding) when it is started and
never reads shared state again, so concurrent registry mutations or provider switches cannot
change a run in flight.

Steps become visible to the caller one at a time, in exactly the order they are generated and
executed; every ``call`` step is immediately followed by its ``result`` or ``error`` step.
Provider faults never escape :meth:`Run.steps`: they end the run with a trailing ``error`` step.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import (
    AsyncIterator,
    Literal,
)

from opdbus.capabilities.context import snapshot as context_snapshot
from opdbus.capabilities.index import CapabilityIndex
from opdbus.config import settings
from opdbus.core.errors import (
    ProviderError,
    UnresolvedTool,
    ValidationError,
)
from opdbus.core.schema import (
    ExecutionProfile,
    ToolDescriptor,
)
from opdbus.core.steps import (
    CallStep,
    ErrorStep,
    PlanStep,
    ResultStep,
    RunOutcome,
    RunRecord,
    RunState,
    new_step_id,
    utcnow,
)
from opdbus.providers.plan_parser import (
    PlanParseError,
    coerce_step,
)
from opdbus.providers.registry import (
    ProviderBinding,
    ProviderRegistry,
)
from opdbus.registry.store import (
    RegistryClient,
    RegistrySnapshot,
    capture_snapshot,
)

logger = logging.getLogger(__name__)

UnresolvedPolicy = Literal["reject", "delegate"]

ORCHESTRATION_FAILED = "Orchestration failed. Please try again."
EMPTY_PLAN = "Planner returned no steps."
MALFORMED_STEP = "Planner emitted a malformed step; ignored."
STRAY_RESULT = "Planner emitted a result step without a preceding call; ignored."
CANCELLED = "cancelled"


def validate_task(task: str) -> str:
    """Return *task* stripped, or raise :class:`ValidationError` if it is blank."""
    if not isinstance(task, str) or not task.strip():
        raise ValidationError("Task must be a non-empty string.")
    return task.strip()


class Run:
    """One execution of one plan; exclusively owns its run record."""

    def __init__(
        self,
        task: str,
        snapshot: RegistrySnapshot,
        binding: ProviderBinding,
        step_delay: float = 0.0,
        unresolved_policy: UnresolvedPolicy = "reject",
    ):
        self.id = uuid.uuid4().hex
        self.task = task
        self.snapshot = snapshot
        self.binding = binding
        self.index = CapabilityIndex.build(
            snapshot.services, snapshot.agents, snapshot.skills, snapshot.profiles
        )
        self.context = context_snapshot(snapshot.services, snapshot.agents)
        self.record = RunRecord(role="assistant")
        self.state = RunState.IDLE
        self.outcome: RunOutcome | None = None
        self._step_delay = step_delay
        self._unresolved_policy = unresolved_policy
        self._streamed = False

    @property
    def composite_context(self) -> str:
        """Task plus system context, handed to the executor with every call."""
        return f"User Prompt: {self.task}\nSystem Context: {self.context}"

    @property
    def completed(self) -> bool:
        return self.state is RunState.COMPLETED

    # ------------------------------------------------------------------ #
    # Record keeping
    # ------------------------------------------------------------------ #
    def _transition(self, state: RunState) -> None:
        logger.debug("Run %s: %s -> %s", self.id, self.state.value, state.value)
        self.state = state

    def _append(self, step: PlanStep) -> PlanStep:
        return self.record.append(step)

    def _complete(self, outcome: RunOutcome) -> None:
        self.outcome = outcome
        self._transition(RunState.COMPLETED)
        self.record.close()
        logger.info(
            "Run %s completed (%s) with %d steps", self.id, outcome.value, len(self.record.steps)
        )

    def _fail(self, exc: BaseException, call_id: str | None = None) -> PlanStep:
        logger.error("Run %s failed: %s", self.id, exc)
        step = self._append(ErrorStep(content=f"{ORCHESTRATION_FAILED} ({exc})", call_id=call_id))
        self._complete(RunOutcome.FAILED)
        return step

    def abort(self) -> None:
        """
        Close a run whose consumer went away; a run that already completed is left untouched.

        After this the run can no longer be streamed.
        """
        self._streamed = True
        if self.completed:
            return
        logger.info("Run %s abandoned before completion", self.id)
        self._append(ErrorStep(content=CANCELLED))
        self._complete(RunOutcome.ABORTED)

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #
    def _profile_for(self, call: CallStep, tool: ToolDescriptor | None) -> ExecutionProfile | None:
        profile = self.snapshot.profile_by_name(call.execution_profile)
        if profile is None and tool is not None:
            profile = self.snapshot.profile_by_name(tool.profile_label)
        return profile

    async def _execute(self, call: CallStep) -> PlanStep:
        """
        Run *call* and return the step that answers it.

        Provider faults propagate; an unresolved tool yields an error step unless the policy is
        ``delegate`` and the executor accepts unknown names.
        """
        tool = self.index.resolve(call.tool_name)
        profile = self._profile_for(call, tool)
        executor = self.binding.for_profile(profile)

        if tool is None and not (
            self._unresolved_policy == "delegate" and executor.tolerates_unknown_tools
        ):
            error = UnresolvedTool(call.tool_name)
            logger.warning("Run %s: %s", self.id, error)
            return ErrorStep(content=str(error), call_id=call.id)

        tool_name = tool.qualified_name if tool is not None else call.tool_name
        logger.info("Run %s: executing '%s' via %r", self.id, tool_name, executor)
        payload = await executor.execute_tool(
            tool_name, call.args, self.composite_context, profile=profile
        )
        return ResultStep(content=payload, call_id=call.id)

    async def steps(self) -> AsyncIterator[PlanStep]:
        """
        Drive the run and yield each step as it is appended to the record.

        May be iterated only once.  Cancelling the consumer appends a ``cancelled`` error step,
        completes the run as aborted and re-raises.
        """
        if self._streamed:
            raise RuntimeError(f"Run {self.id} has already been streamed.")
        self._streamed = True

        try:
            self._transition(RunState.PLANNING)
            try:
                plan = await self.binding.active.generate_plan(
                    self.task, self.index.tools, self.context
                )
            except Exception as exc:  # pylint: disable=broad-except
                yield self._fail(exc)
                return

            if not isinstance(plan, (list, tuple)):
                yield self._fail(
                    ProviderError(f"planner returned {type(plan).__name__}, not a list of steps")
                )
                return

            self._transition(RunState.EXECUTING)
            logger.info("Run %s: plan has %d step(s)", self.id, len(plan))
            if not plan:
                yield self._append(ErrorStep(content=EMPTY_PLAN))
                self._complete(RunOutcome.FAILED)
                return

            for raw in plan:
                await asyncio.sleep(self._step_delay)

                try:
                    planned = coerce_step(raw)
                except PlanParseError as exc:
                    logger.warning("Run %s: %s", self.id, exc)
                    yield self._append(ErrorStep(content=f"{MALFORMED_STEP} ({exc})"))
                    continue

                if isinstance(planned, ResultStep):
                    logger.warning("Run %s: %s", self.id, STRAY_RESULT)
                    yield self._append(ErrorStep(content=STRAY_RESULT))
                    continue

                # Stamp at visibility time; generator-side ids are not trusted to be unique.
                step = planned.model_copy(update={"id": new_step_id(), "created_at": utcnow()})
                yield self._append(step)

                if isinstance(step, CallStep):
                    try:
                        answer = await self._execute(step)
                    except Exception as exc:  # pylint: disable=broad-except
                        yield self._fail(exc, call_id=step.id)
                        return
                    yield self._append(answer)

            last = self.record.last_kind
            self._complete(RunOutcome.FAILED if last == "error" else RunOutcome.SUCCEEDED)

        except (asyncio.CancelledError, GeneratorExit):
            if not self.completed:
                self._append(ErrorStep(content=CANCELLED))
                self._complete(RunOutcome.ABORTED)
            raise
        except Exception as exc:  # pylint: disable=broad-except
            if self.completed:
                raise
            yield self._fail(exc)


class PlanRunner:
    """Starts runs against a registry and a provider table."""

    def __init__(
        self,
        registry: RegistryClient,
        providers: ProviderRegistry,
        step_delay: float | None = None,
        unresolved_policy: UnresolvedPolicy | None = None,
    ):
        self.registry = registry
        self.providers = providers
        self.step_delay = settings.STEP_DELAY_SECONDS if step_delay is None else step_delay
        self.unresolved_policy = unresolved_policy or settings.UNRESOLVED_TOOL_POLICY

    async def start(self, task: str, provider_id: str | None = None) -> Run:
        """
        Validate *task*, capture the registry and provider binding, and return an idle run.

        Raises
        ------
        ValidationError
            If *task* is blank.
        RegistryUnavailable
            If the registry cannot be read.
        KeyError
            If *provider_id* is not registered.
        """
        task = validate_task(task)
        snapshot = await capture_snapshot(self.registry)
        binding = self.providers.bind(provider_id)
        run = Run(
            task,
            snapshot,
            binding,
            step_delay=self.step_delay,
            unresolved_policy=self.unresolved_policy,
        )
        logger.info(
            "Run %s started: provider=%s registry=v%d tools=%d",
            run.id,
            binding.active_id,
            snapshot.version,
            len(run.index),
        )
        return run

    async def execute(self, task: str, provider_id: str | None = None) -> Run:
        """Start a run and drain it to completion."""
        run = await self.start(task, provider_id)
        async for _ in run.steps():
            pass
        return run
