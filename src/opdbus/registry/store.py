"""
Registry collaborators.

The registry (services, agents, skills, profiles, plugins) is owned by an external store; the
orchestration core only reads it through :class:`RegistryClient`.  A run captures a
:class:`RegistrySnapshot` once, when it starts, and never reads the registry again.
"""

import asyncio
import logging
import uuid
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Iterable,
    List,
    Literal,
    Tuple,
)
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
)

from opdbus.core.errors import (
    InvalidURL,
    RegistryUnavailable,
)
from opdbus.core.schema import (
    DBusService,
    ExecutionProfile,
    MCPAgent,
    Plugin,
    Skill,
)
from opdbus.registry import defaults

logger = logging.getLogger(__name__)

SNAPSHOT_ATTEMPTS = 5


class RegistrySnapshot(BaseModel):
    """Immutable, versioned copy of the registry taken at one point in time."""

    model_config = ConfigDict(frozen=True)

    version: int
    services: Tuple[DBusService, ...] = ()
    agents: Tuple[MCPAgent, ...] = ()
    skills: Tuple[Skill, ...] = ()
    profiles: Tuple[ExecutionProfile, ...] = ()
    plugins: Tuple[Plugin, ...] = ()

    def profile_by_name(self, name: str | None) -> ExecutionProfile | None:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None


class RegistryClient(ABC):
    """Async read interface to the capability registry."""

    @abstractmethod
    async def fetch_services(self) -> List[DBusService]:
        """Return DBus services in insertion order."""

    @abstractmethod
    async def fetch_agents(self) -> List[MCPAgent]:
        """Return MCP agents in insertion order."""

    @abstractmethod
    async def fetch_skills(self) -> List[Skill]:
        """Return skills in insertion order."""

    @abstractmethod
    async def fetch_profiles(self) -> List[ExecutionProfile]:
        """Return execution profiles in insertion order."""

    @abstractmethod
    async def fetch_plugins(self) -> List[Plugin]:
        """Return plugins in insertion order."""

    @abstractmethod
    async def version(self) -> int:
        """Return a counter that changes whenever the registry is mutated."""


async def capture_snapshot(
    client: RegistryClient, attempts: int = SNAPSHOT_ATTEMPTS
) -> RegistrySnapshot:
    """
    Read every collection from *client* and freeze the result.

    The version is read before and after the collections; if a mutation lands in between, the
    read is repeated so the snapshot's version always labels exactly the data it holds.

    Raises
    ------
    RegistryUnavailable
        If any of the underlying fetches fails, or the registry keeps changing for *attempts*
        consecutive reads.
    """
    for attempt in range(attempts):
        version = await client.version()
        services, agents, skills, profiles, plugins = await asyncio.gather(
            client.fetch_services(),
            client.fetch_agents(),
            client.fetch_skills(),
            client.fetch_profiles(),
            client.fetch_plugins(),
        )
        current = await client.version()
        if current == version:
            break
        logger.info(
            "Registry changed while reading (v%d -> v%d), retrying (attempt %d/%d)...",
            version,
            current,
            attempt + 1,
            attempts,
        )
    else:
        raise RegistryUnavailable(
            f"Registry changed during each of {attempts} reads; no consistent snapshot"
        )

    logger.debug(
        "Captured registry v%d: %d services, %d agents, %d skills, %d profiles",
        version,
        len(services),
        len(agents),
        len(skills),
        len(profiles),
    )
    return RegistrySnapshot(
        version=version,
        services=tuple(services),
        agents=tuple(agents),
        skills=tuple(skills),
        profiles=tuple(profiles),
        plugins=tuple(plugins),
    )


class InMemoryRegistry(RegistryClient):
    """
    Process-local registry seeded with the default catalog.

    Every mutation bumps :meth:`version`; snapshots already taken are unaffected because all
    entities are frozen and the collections are copied on read.
    """

    def __init__(
        self,
        services: Iterable[DBusService] | None = None,
        agents: Iterable[MCPAgent] | None = None,
        skills: Iterable[Skill] | None = None,
        profiles: Iterable[ExecutionProfile] | None = None,
        plugins: Iterable[Plugin] | None = None,
        latency: float = 0.0,
    ):
        self._services = list(defaults.SERVICES if services is None else services)
        self._agents = list(defaults.AGENTS if agents is None else agents)
        self._skills = list(defaults.SKILLS if skills is None else skills)
        self._profiles = list(defaults.EXECUTION_PROFILES if profiles is None else profiles)
        self._plugins = list(defaults.PLUGINS if plugins is None else plugins)
        self._latency = latency
        self._version = 0

    async def _delay(self) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #
    async def fetch_services(self) -> List[DBusService]:
        await self._delay()
        return list(self._services)

    async def fetch_agents(self) -> List[MCPAgent]:
        await self._delay()
        return list(self._agents)

    async def fetch_skills(self) -> List[Skill]:
        await self._delay()
        return list(self._skills)

    async def fetch_profiles(self) -> List[ExecutionProfile]:
        await self._delay()
        return list(self._profiles)

    async def fetch_plugins(self) -> List[Plugin]:
        await self._delay()
        return list(self._plugins)

    async def version(self) -> int:
        return self._version

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #
    async def connect_agent(self, url: str) -> MCPAgent:
        """
        Register a newly discovered agent listening at *url*.

        Raises
        ------
        InvalidURL
            If *url* has no http(s) scheme or no host, or an unparsable port.
        """
        parsed = urlparse(url.strip())
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise InvalidURL(url)
        try:
            port = parsed.port
        except ValueError as exc:
            raise InvalidURL(url, str(exc)) from exc

        await self._delay()
        agent = MCPAgent(
            id=uuid.uuid4().hex,
            name=f"New Agent ({port or 80})",
            url=url.strip(),
            status="connected",
            capabilities=["discovered_new_tool"],
            plugin_id="plugin-core",
            execution_profile_id="profile-realtime",
        )
        self._agents.append(agent)
        self._version += 1
        logger.info("Connected agent '%s' at %s", agent.name, agent.url)
        return agent

    def remove_agent(self, agent_id: str) -> bool:
        before = len(self._agents)
        self._agents = [a for a in self._agents if a.id != agent_id]
        if len(self._agents) == before:
            return False
        self._version += 1
        logger.info("Removed agent %s", agent_id)
        return True

    def set_agent_status(
        self, agent_id: str, status: Literal["connected", "disconnected"]
    ) -> MCPAgent:
        for i, agent in enumerate(self._agents):
            if agent.id == agent_id:
                updated = agent.model_copy(update={"status": status})
                self._agents[i] = updated
                self._version += 1
                return updated
        raise KeyError(agent_id)

