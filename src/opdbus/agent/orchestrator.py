"""
Conversation sessions on top of the plan runner.

Each session keeps its history as run records: a submitted task adds a ``user`` record holding
the task text, followed by the ``assistant`` record owned by the run that answers it.
"""

import logging
import uuid
from typing import (
    Dict,
    List,
)

from opdbus.agent.plan_runner import (
    PlanRunner,
    Run,
)
from opdbus.core.steps import (
    RunRecord,
    ThoughtStep,
)

logger = logging.getLogger(__name__)


class Session:
    """Ordered history of run records for one conversation."""

    def __init__(self, session_id: str):
        self.id = session_id
        self.history: List[RunRecord] = []
        self.runs: List[Run] = []


class Orchestrator:
    """Owns the sessions and hands tasks to the :class:`PlanRunner`."""

    def __init__(self, runner: PlanRunner):
        self.runner = runner
        self._sessions: Dict[str, Session] = {}

    def create_session(self) -> Session:
        session = Session(uuid.uuid4().hex)
        self._sessions[session.id] = session
        return session

    def get_or_create_session(self, session_id: str | None = None) -> Session:
        """Get existing session or create a new one."""
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]
        return self.create_session()

    def get_session(self, session_id: str) -> Session:
        return self._sessions[session_id]

    def list_sessions(self) -> List[str]:
        return list(self._sessions)

    async def submit(
        self, task: str, session_id: str | None = None, provider_id: str | None = None
    ) -> tuple[Session, Run]:
        """
        Start a run for *task* and record it in the session history.

        Validation and registry failures propagate before the history is touched.
        """
        run = await self.runner.start(task, provider_id)
        session = self.get_or_create_session(session_id)

        request = RunRecord(role="user", started_at=run.record.started_at)
        request.append(ThoughtStep(content=run.task))
        request.close()

        session.history.append(request)
        session.history.append(run.record)
        session.runs.append(run)
        logger.debug("Session %s: run %s submitted", session.id, run.id)
        return session, run
