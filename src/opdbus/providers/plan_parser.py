"""
Best-effort parser for plans returned by LLMs.

Models are asked for ``{"steps": [...]}`` but in practice answer with a bare array, wrap the JSON
in a markdown code fence, add prose around it, or use camelCase keys (``type``, ``toolName``,
``executionProfile``).  This module turns all of those into validated plan steps.
"""

import json
import logging
import re
from typing import (
    Any,
    Dict,
    List,
    Mapping,
)

from pydantic import ValidationError

from opdbus.core.steps import (
    CallStep,
    ErrorStep,
    PlanStep,
    ResultStep,
    ThoughtStep,
    plan_step_adapter,
)

logger = logging.getLogger(__name__)

_GENERATED_KINDS = {"thought", "call", "error"}
_STEP_TYPES = (ThoughtStep, CallStep, ResultStep, ErrorStep)

_KEY_ALIASES = {
    "type": "kind",
    "toolName": "tool_name",
    "tool": "tool_name",
    "executionProfile": "execution_profile",
    "arguments": "args",
}


class PlanParseError(ValueError):
    """Raised when a response holds no usable plan."""


def _find_matching(content: str, open_idx: int) -> int:
    """Given content[open_idx] in '[{', return the index just past its matching bracket."""
    pairs = {"[": "]", "{": "}"}
    stack: List[str] = []
    in_string = False
    escaped = False
    for i in range(open_idx, len(content)):
        ch = content[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in pairs:
            stack.append(pairs[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
            if not stack:
                return i + 1
    raise PlanParseError("unbalanced brackets in planner response")


def sanitize_json(content: str) -> str:
    """Strip code fences, control characters and surrounding prose from an LLM JSON answer."""
    if "```" in content:
        match = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
        if match:
            content = match.group(1).strip()

    # Remove control characters except whitespace
    content = "".join(ch for ch in content if ch >= " " or ch in "\n\r\t")

    starts = [i for i in (content.find("["), content.find("{")) if i >= 0]
    if not starts:
        raise PlanParseError("no JSON found in planner response")
    open_idx = min(starts)
    return content[open_idx : _find_matching(content, open_idx)]


def _normalize(raw: Mapping[str, Any]) -> Dict[str, Any]:
    step = {_KEY_ALIASES.get(key, key): value for key, value in raw.items()}
    if step.get("args") is None:
        step.pop("args", None)
    if step.get("content") is None:
        step["content"] = ""
    # Ids and timestamps are assigned locally, never taken from the model.
    step.pop("id", None)
    step.pop("created_at", None)
    return step


def coerce_step(raw: Any) -> PlanStep:
    """
    Turn one generator-supplied plan entry into a validated step.

    Step models pass through untouched; mappings are normalized (camelCase keys, ``type``) and
    validated.

    Raises
    ------
    PlanParseError
        If *raw* is neither a step nor a mapping that validates as one.
    """
    if isinstance(raw, _STEP_TYPES):
        return raw
    if not isinstance(raw, Mapping):
        raise PlanParseError(f"plan entry is not an object: {raw!r}")
    try:
        return plan_step_adapter.validate_python(_normalize(raw))
    except ValidationError as exc:
        raise PlanParseError(
            f"invalid plan entry {dict(raw)!r} ({exc.error_count()} validation error(s))"
        ) from exc


def parse_plan(content: str) -> List[PlanStep]:
    """
    Parse *content* into plan steps.

    Steps of a kind a generator may not produce (``result``) or that fail validation are
    dropped with a warning.

    Raises
    ------
    PlanParseError
        If no JSON plan can be recovered or nothing valid remains.
    """
    try:
        payload = json.loads(sanitize_json(content))
    except json.JSONDecodeError as exc:
        raise PlanParseError(f"invalid JSON in planner response: {exc}") from exc

    if isinstance(payload, dict):
        payload = payload.get("steps", payload.get("plan", [payload]))
    if not isinstance(payload, list):
        raise PlanParseError("planner response is not a list of steps")

    steps: List[PlanStep] = []
    for raw in payload:
        try:
            step = coerce_step(raw)
        except PlanParseError as exc:
            logger.warning("Dropping %s", exc)
            continue
        if step.kind not in _GENERATED_KINDS:
            logger.warning("Dropping plan entry of kind %r", step.kind)
            continue
        steps.append(step)

    if not steps:
        raise PlanParseError("planner response contained no valid steps")
    return steps
