"""
Schema definitions for registry entities and the tool descriptors derived from them.

These data models serve as the contract between the registry collaborators, the capability index
and the providers.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.  Every model is frozen: a registry snapshot handed to a run can be shared
between concurrent runs without copying.
"""

from enum import Enum
from typing import (
    Dict,
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# DBus introspection
# ---------------------------------------------------------------------------
class DBusMethodArg(_Frozen):
    """A single DBus method argument."""

    name: str
    type: str
    direction: Literal["in", "out"]


class DBusMethod(_Frozen):
    name: str
    args: List[DBusMethodArg] = Field(default_factory=list)


class DBusProperty(_Frozen):
    name: str
    type: str
    access: Literal["read", "write", "readwrite"]


class DBusSignal(_Frozen):
    name: str
    args: List[DBusMethodArg] = Field(default_factory=list)


class DBusInterface(_Frozen):
    """A DBus interface with its members."""

    name: str
    methods: List[DBusMethod] = Field(default_factory=list)
    properties: List[DBusProperty] = Field(default_factory=list)
    signals: List[DBusSignal] = Field(default_factory=list)


class DBusObject(_Frozen):
    path: str
    interfaces: List[DBusInterface] = Field(default_factory=list)
    children: List["DBusObject"] = Field(default_factory=list)


class DBusService(_Frozen):
    """A bus name and the objects it exports."""

    id: str
    name: str
    status: Literal["active", "inactive", "error"]
    objects: List[DBusObject] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------
class ExecutionProfile(_Frozen):
    """Policy bundle that bounds latency and retries and orders backend preference."""

    id: str
    name: str
    description: str = ""
    model_preferences: List[str] = Field(default_factory=list)
    temperature: float = Field(0.2, ge=0.0, le=1.0)
    timeout_ms: int = Field(30000, gt=0)
    max_retries: int = Field(0, ge=0)
    icon: str = "⚡"


class Plugin(_Frozen):
    id: str
    name: str
    description: str = ""
    version: str = "0.0.0"
    icon: Optional[str] = None


class MCPAgent(_Frozen):
    """A remote agent reachable over MCP."""

    id: str
    name: str
    url: str
    status: Literal["connected", "disconnected"]
    capabilities: List[str] = Field(default_factory=list)
    plugin_id: Optional[str] = None
    execution_profile_id: Optional[str] = None


class Skill(_Frozen):
    """A built-in skill with a declared parameter mapping (name -> type)."""

    id: str
    name: str
    description: str = ""
    parameters: Dict[str, str] = Field(default_factory=dict)
    category: str = "utility"
    plugin_id: Optional[str] = None
    execution_profile_id: Optional[str] = None


class SourceKind(str, Enum):
    """Where a tool descriptor came from."""

    DBUS_METHOD = "DBUS_METHOD"
    AGENT_CAPABILITY = "AGENT_CAPABILITY"
    SKILL = "SKILL"


class ToolDescriptor(_Frozen):
    """A single invocable tool exposed to the planner."""

    profile_label: str
    qualified_name: str
    signature: str
    source_kind: SourceKind
    owner: str
    description: str = ""

    def prompt_line(self) -> str:
        """Render the descriptor the way planners see it: ``[Profile] Name - description``."""
        line = f"[{self.profile_label}] {self.qualified_name}"
        if self.description:
            line += f" - {self.description}"
        return line


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------
class DeploymentConfig(BaseModel):
    """Daemon installation settings handed to a log-streaming provider."""

    port: int = 8080
    log_level: str = "info"
    install_path: str = "/usr/local/bin/op-dbus-v2"
    config_path: str = "/etc/op-dbus/config.json"
    enable_remote: bool = False
