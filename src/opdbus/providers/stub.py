"""
Deterministic provider used when no model is configured and in tests.

Planning scores every tool by how many task words appear in its name or description and calls
the best match; ties go to the earliest tool in index order, so identical input always yields the
identical plan.  Execution never fails and accepts any tool name.
"""

import asyncio
import json
import re
from typing import (
    Any,
    AsyncIterator,
    List,
    Mapping,
    Sequence,
)

from opdbus.core.schema import (
    DeploymentConfig,
    ExecutionProfile,
    ToolDescriptor,
)
from opdbus.core.steps import (
    CallStep,
    PlanStep,
    ThoughtStep,
)
from opdbus.providers.base import (
    BaseProvider,
    register_provider,
)

_WORD = re.compile(r"[a-z0-9]+")
_MIN_WORD_LEN = 3


def _score(words: Sequence[str], tool: ToolDescriptor) -> int:
    haystack = f"{tool.qualified_name} {tool.description}".lower()
    return sum(1 for word in words if word in haystack)


@register_provider("stub")
class StubProvider(BaseProvider):
    """Keyword-matching planner with a mock executor."""

    tolerates_unknown_tools = True

    def __init__(self, provider_id: str = "stub", chunk_delay: float = 0.5):
        super().__init__(provider_id)
        self._chunk_delay = chunk_delay

    async def generate_text(self, prompt: str) -> str:
        return f"[Mock {self.id}] Response to: {prompt[:20]}..."

    async def generate_plan(
        self, task: str, tools: Sequence[ToolDescriptor], context: str
    ) -> List[PlanStep]:
        words = [w for w in _WORD.findall(task.lower()) if len(w) >= _MIN_WORD_LEN]
        best: ToolDescriptor | None = None
        best_score = 0
        for tool in tools:
            score = _score(words, tool)
            if score > best_score:
                best, best_score = tool, score

        if best is None:
            return [
                ThoughtStep(
                    content=f"[{self.id}] None of the {len(tools)} available tools matches "
                    f"'{task}'; nothing to execute."
                )
            ]
        return [
            ThoughtStep(
                content=f"[{self.id}] Matched '{task}' to {best.signature} "
                f"({best_score} keyword hit(s) among {len(tools)} tools)."
            ),
            CallStep(
                tool_name=best.qualified_name,
                args={},
                content=f"Invoke {best.signature}",
                execution_profile=best.profile_label,
            ),
        ]

    async def execute_tool(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        context: str,
        profile: ExecutionProfile | None = None,
    ) -> str:
        return json.dumps(
            {"status": "success", "mock_data": True, "tool": tool_name, "args": dict(args)},
            default=str,
        )

    async def _stream_chunks(self, config: DeploymentConfig) -> AsyncIterator[str]:
        lines = [
            "Initializing...",
            f"Mocking deployment to {config.install_path} (port {config.port})...",
            "Done.",
        ]
        for line in lines:
            if self._chunk_delay:
                await asyncio.sleep(self._chunk_delay)
            yield line + "\n"
