"""
Error taxonomy for the orchestration core.

Only :class:`ValidationError` and :class:`RegistryUnavailable` ever reach a caller of
:meth:`opdbus.agent.plan_runner.PlanRunner.start`.  Provider faults are converted into in-band
``error`` steps by the runner and never escape a run.
"""


class OrchestrationError(RuntimeError):
    """Base class for every error raised by opdbus."""


class ValidationError(OrchestrationError):
    """Raised when input is rejected before any run is created."""


class InvalidURL(ValidationError):
    """Raised when an agent URL cannot be parsed."""

    def __init__(self, url: str, reason: str = "not a valid http(s) URL") -> None:
        super().__init__(f"Invalid agent URL '{url}': {reason}")
        self.url = url


class RegistryUnavailable(OrchestrationError):
    """Raised when a registry fetch fails on transport."""


class ProviderError(OrchestrationError):
    """Raised when a plan generator or tool executor fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnresolvedTool(OrchestrationError):
    """Raised when a call step names a tool absent from the captured capability index."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unresolved tool '{tool_name}': not in the capability index.")
        self.tool_name = tool_name


class StreamInterrupted(OrchestrationError):
    """Raised when a streaming provider fails mid-stream."""

    def marker(self) -> str:
        """Return the final chunk emitted in place of the failed stream."""
        return f"\n[ERROR] Stream interrupted: {self}"
