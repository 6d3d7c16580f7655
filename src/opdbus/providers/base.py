"""
Provider interface for opdbus.

A provider backs both halves of orchestration: the *reasoner* that turns a task into a plan and
the *executor* that runs a single tool call.  It also streams deployment logs and answers ad hoc
text prompts.  Everything else (runner, API, CLI) stays provider-agnostic.

Additional providers can be added by subclassing :class:`BaseProvider` and registering the class
via :func:`register_provider`.
"""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    AsyncIterator,
    Callable,
    ClassVar,
    Dict,
    List,
    Mapping,
    Sequence,
    Type,
)

from opdbus.core.schema import (
    DeploymentConfig,
    ExecutionProfile,
    ToolDescriptor,
)
from opdbus.core.steps import PlanStep
from opdbus.streaming.lines import guard_stream

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_PROVIDER_CLASSES: Dict[str, Type["BaseProvider"]] = {}


def register_provider(kind: str) -> Callable:
    """Decorator to register a provider class under *kind*."""

    def wrapper(cls: Type["BaseProvider"]) -> Type["BaseProvider"]:
        _PROVIDER_CLASSES[kind] = cls
        cls.kind = kind
        return cls

    return wrapper


def load_provider(kind: str, provider_id: str | None = None, **kwargs: Any) -> "BaseProvider":
    """
    Factory that returns an instantiated provider of the registered *kind*.

    *provider_id* defaults to *kind*; LLM providers use it as the model name.
    """
    cls = _PROVIDER_CLASSES.get(kind.lower())
    if cls is None:
        raise ValueError(f"Provider kind '{kind}' is not registered.")
    return cls(provider_id or kind, **kwargs)


def registered_kinds() -> List[str]:
    return sorted(_PROVIDER_CLASSES)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseProvider(ABC):
    """Abstract reasoner + executor + log streamer."""

    kind: ClassVar[str] = "base"

    # Whether ``execute_tool`` copes with names absent from the capability index.
    tolerates_unknown_tools: ClassVar[bool] = False

    def __init__(self, provider_id: str):
        self.id = provider_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Answer a free-form prompt."""

    @abstractmethod
    async def generate_plan(
        self, task: str, tools: Sequence[ToolDescriptor], context: str
    ) -> List[PlanStep]:
        """
        Return an ordered list of ``thought``/``call`` steps for *task*.

        A provider that cannot produce a structured plan returns a single ``error`` step.
        Transport or credential failures raise :class:`~opdbus.core.errors.ProviderError`.
        """

    @abstractmethod
    async def execute_tool(
        self,
        tool_name: str,
        args: Mapping[str, Any],
        context: str,
        profile: ExecutionProfile | None = None,
    ) -> str:
        """Run *tool_name* and return its payload serialized as text."""

    @abstractmethod
    def _stream_chunks(self, config: DeploymentConfig) -> AsyncIterator[str]:
        """Yield raw deployment-log chunks (chunk boundaries are arbitrary)."""

    def stream_log(self, config: DeploymentConfig) -> AsyncIterator[str]:
        """
        Stream a deployment log for *config*.

        The sequence is finite and not restartable.  A failure mid-stream ends it with a single
        ``[ERROR] Stream interrupted`` marker chunk instead of raising.
        """
        return guard_stream(self._stream_chunks(config))
