"""
Shared behaviour of LLM-backed providers.

Subclasses only implement :meth:`LLMProvider._complete` and :meth:`LLMProvider._stream`; plan
parsing, the execution-profile retry/timeout policy and error wrapping live here.
"""

import asyncio
import logging
from abc import abstractmethod
from typing import (
    Any,
    AsyncIterator,
    List,
    Mapping,
    Sequence,
)

from opdbus.config import settings
from opdbus.core.errors import ProviderError
from opdbus.core.schema import (
    DeploymentConfig,
    ExecutionProfile,
    ToolDescriptor,
)
from opdbus.core.steps import (
    ErrorStep,
    PlanStep,
)
from opdbus.providers import prompts
from opdbus.providers.base import BaseProvider
from opdbus.providers.plan_parser import (
    PlanParseError,
    parse_plan,
)

logger = logging.getLogger(__name__)

PLAN_FAILURE_MESSAGE = "Failed to generate plan."
DEFAULT_TEMPERATURE = 0.2


class LLMProvider(BaseProvider):
    """A provider whose every capability is a model completion."""

    def __init__(
        self,
        provider_id: str,
        api_key: str | None = None,
        max_tokens: int | None = None,
        retry_base_delay: float = 0.5,
    ):
        super().__init__(provider_id)
        self._api_key = api_key
        self._max_tokens = max_tokens or settings.PROVIDER_MAX_TOKENS
        self._retry_base_delay = retry_base_delay
        if not api_key:
            logger.warning("%s: API key missing; calls will fail until one is configured.", self)

    # ------------------------------------------------------------------ #
    # Backend hooks
    # ------------------------------------------------------------------ #
    @abstractmethod
    async def _complete(
        self,
        system: str,
        user: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        json_mode: bool = False,
    ) -> str:
        """Return the model's full answer; raise :class:`ProviderError` on failure."""

    @abstractmethod
    def _stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield text chunks of the model's answer to *prompt*."""

    # ------------------------------------------------------------------ #
    # Provider contract
    # ------------------------------------------------------------------ #
    async def generate_text(self, prompt: str) -> str:
        text = await self._complete("", prompt)
        return text or "No response generated."

    async def generate_plan(
        self, task: str, tools: Sequence[ToolDescriptor], context: str
    ) -> List[PlanStep]:
        content = await self._complete(
            prompts.plan_prompt(tools, context), task, json_mode=True
        )
        logger.debug("%s plan response: %s", self, content)
        try:
            return parse_plan(content)
        except PlanParseError as exc:
            logger.error("%s returned an unusable plan: %s", self, exc)
            return [ErrorStep(content=PLAN_FAILURE_MESSAGE)]

    async def execute_tool(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        context: str,
        profile: ExecutionProfile | None = None,
    ) -> str:
        """
        Simulate *tool_name* through the model.

        The call is bounded by ``profile.timeout_ms`` and retried up to ``profile.max_retries``
        times with exponential backoff.  Without a profile a single untimed attempt is made.
        """
        attempts = 1 + (profile.max_retries if profile else 0)
        timeout = profile.timeout_ms / 1000 if profile else None
        temperature = profile.temperature if profile else DEFAULT_TEMPERATURE
        prompt = prompts.tool_prompt(tool_name, args, context)

        last_error = "no attempt made"
        for attempt in range(attempts):
            try:
                content = await asyncio.wait_for(
                    self._complete("", prompt, temperature=temperature, json_mode=True),
                    timeout=timeout,
                )
                return content or "{}"
            except asyncio.TimeoutError:
                last_error = f"timed out after {timeout:.1f}s"
            except ProviderError as exc:
                last_error = exc.message

            if attempt < attempts - 1:
                retry_delay = self._retry_base_delay * (2**attempt)
                logger.info(
                    "Tool '%s' failed (%s), retrying in %.1f seconds (attempt %d/%d)...",
                    tool_name,
                    last_error,
                    retry_delay,
                    attempt + 1,
                    attempts,
                )
                await asyncio.sleep(retry_delay)

        raise ProviderError(f"Tool '{tool_name}' failed after {attempts} attempt(s): {last_error}")

    def _stream_chunks(self, config: DeploymentConfig) -> AsyncIterator[str]:
        return self._stream(prompts.deployment_prompt(config))
