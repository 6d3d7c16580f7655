"""Registry client that reads another opdbus instance's ``/registry`` endpoints over HTTP."""

import logging
from typing import (
    Any,
    List,
    Type,
    TypeVar,
)

import httpx
from pydantic import (
    BaseModel,
    TypeAdapter,
    ValidationError,
)

from opdbus.core.errors import RegistryUnavailable
from opdbus.core.schema import (
    DBusService,
    ExecutionProfile,
    MCPAgent,
    Plugin,
    Skill,
)
from opdbus.registry.store import RegistryClient

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


class HttpRegistryClient(RegistryClient):
    """
    Read-only registry backed by a remote API.

    Parameters
    ----------
    base_url:
        Root of the remote API, e.g. ``http://registry:8000``.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport (tests inject :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _get(self, path: str) -> Any:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(path)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPError as exc:
            logger.error("Registry request %s failed: %s", path, exc)
            raise RegistryUnavailable(f"GET {path} failed: {exc}") from exc

    async def _get_list(self, path: str, model: Type[_M]) -> List[_M]:
        payload = await self._get(path)
        try:
            return TypeAdapter(List[model]).validate_python(payload)  # type: ignore[valid-type]
        except ValidationError as exc:
            raise RegistryUnavailable(f"GET {path} returned malformed data: {exc}") from exc

    async def fetch_services(self) -> List[DBusService]:
        return await self._get_list("/registry/services", DBusService)

    async def fetch_agents(self) -> List[MCPAgent]:
        return await self._get_list("/registry/agents", MCPAgent)

    async def fetch_skills(self) -> List[Skill]:
        return await self._get_list("/registry/skills", Skill)

    async def fetch_profiles(self) -> List[ExecutionProfile]:
        return await self._get_list("/registry/profiles", ExecutionProfile)

    async def fetch_plugins(self) -> List[Plugin]:
        return await self._get_list("/registry/plugins", Plugin)

    async def version(self) -> int:
        payload = await self._get("/registry/version")
        try:
            return int(payload["version"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RegistryUnavailable(f"GET /registry/version returned {payload!r}") from exc
