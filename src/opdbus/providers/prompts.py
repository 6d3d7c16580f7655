"""Prompt templates shared by the LLM-backed providers."""

import json
from typing import (
    Any,
    Mapping,
    Sequence,
)

from opdbus.core.schema import (
    DeploymentConfig,
    ToolDescriptor,
)

PLAN_SYSTEM_PROMPT = """\
You are the orchestration engine of op-dbus, a Linux system management daemon.
Break the user's request down into an ordered sequence of reasoning and tool-call steps.

GLOBAL SYSTEM CONTEXT:
{context}

Guidelines:
- Every tool is tagged with its execution profile in brackets.  Prefer 'Deep Reasoning' tools
  for complex analysis and 'Real-time' tools for simple lookups.
- Respect the orchestration rules in the system context.
- Only call tools from the list below and copy their names exactly (without the profile tag).

Available tools (format: [PROFILE] ToolName - Description):
{tools}

Respond with a single JSON object and nothing else:
{{"steps": [
  {{"type": "thought", "content": "..."}},
  {{"type": "call", "toolName": "...", "args": {{"key": "value"}}, "content": "why",
    "executionProfile": "profile name of the tool"}}
]}}
"""

TOOL_SIMULATION_PROMPT = """\
You are the tool execution backend of op-dbus.

Produce the output of the tool '{tool_name}' invoked with arguments: {args}.
Context: {context}

Requirements:
- Return realistic structured JSON that this tool would produce.
- Queries return plausible rows or log entries with ISO-8601 timestamps.
- Actions (restart, build, apply) return a status report.
- Code analysis returns a list of findings.
- Raw JSON only, no markdown.
"""

DEPLOYMENT_LOG_PROMPT = """\
Act as the installation script logger for op-dbus.
Configuration: {config}

Write the log of the installation as it happens, as raw text lines without markdown.
Start every line with a [HH:MM:SS] timestamp.  Cover, in order:
1. Environment check (kernel, permissions).
2. Dependency resolution.
3. Binary installation to {install_path}.
4. Configuration write to {config_path}.
5. Systemd unit creation.
6. Service startup on port {port}.
Finish with the line "DEPLOYMENT SUCCESSFUL".
"""


def plan_prompt(tools: Sequence[ToolDescriptor], context: str) -> str:
    tool_lines = "\n".join(f"- {tool.prompt_line()}" for tool in tools) or "- (none)"
    return PLAN_SYSTEM_PROMPT.format(context=context or "(none)", tools=tool_lines)


def tool_prompt(tool_name: str, args: Mapping[str, Any], context: str) -> str:
    return TOOL_SIMULATION_PROMPT.format(
        tool_name=tool_name,
        args=json.dumps(dict(args), default=str),
        context=context or "User requested an operation.",
    )


def deployment_prompt(config: DeploymentConfig) -> str:
    return DEPLOYMENT_LOG_PROMPT.format(
        config=config.model_dump_json(),
        install_path=config.install_path,
        config_path=config.config_path,
        port=config.port,
    )
