"""Common utility functions for the project."""

from enum import Enum
from typing import Any


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    GREY = "\033[90m"


STEP_COLORS = {
    "thought": AnsiColors.GREY,
    "call": AnsiColors.BLUE,
    "result": AnsiColors.GREEN,
    "error": AnsiColors.RED,
}


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}\033[0m", *args, **kwargs)  # ANSI reset at the end


def format_step(step: dict[str, Any]) -> str:
    """One-line rendering of a serialized plan step for terminal output."""
    kind = step.get("kind", "?")
    if kind == "call":
        profile = f" [{step['execution_profile']}]" if step.get("execution_profile") else ""
        return f"→ call{profile} {step.get('tool_name')} {step.get('args') or {}}"
    return f"{kind}: {step.get('content', '')}"
