"""
Runtime selection of the provider that backs planning and execution.

Switching providers is a table lookup.  A run captures a :class:`ProviderBinding` when it starts;
later calls to :meth:`ProviderRegistry.select` only affect runs started afterwards.
"""

import logging
from types import MappingProxyType
from typing import (
    Dict,
    List,
    Mapping,
)

from opdbus.config import Settings
from opdbus.core.schema import ExecutionProfile
from opdbus.providers import (  # noqa: F401  # pylint: disable=unused-import
    anthropic_provider,
    openai_provider,
    stub,
)
from opdbus.providers.base import (
    BaseProvider,
    load_provider,
)

logger = logging.getLogger(__name__)


class ProviderBinding:
    """Frozen view of the provider table taken at run start."""

    def __init__(self, providers: Mapping[str, BaseProvider], active_id: str):
        self._providers = MappingProxyType(dict(providers))
        self.active_id = active_id

    @property
    def active(self) -> BaseProvider:
        return self._providers[self.active_id]

    def for_profile(self, profile: ExecutionProfile | None) -> BaseProvider:
        """Return the first registered provider the profile prefers, else the active one."""
        if profile is not None:
            for model_id in profile.model_preferences:
                provider = self._providers.get(model_id)
                if provider is not None:
                    return provider
        return self.active


class ProviderRegistry:
    """Maps provider ids to provider instances and tracks the active one."""

    def __init__(self, default_id: str, providers: Mapping[str, BaseProvider]):
        if default_id not in providers:
            raise KeyError(f"Default provider '{default_id}' is not among {sorted(providers)}")
        self._providers: Dict[str, BaseProvider] = dict(providers)
        self.default_id = default_id
        self._active_id = default_id

    def register(self, provider_id: str, provider: BaseProvider) -> None:
        if provider_id in self._providers:
            logger.info("Replacing provider '%s'", provider_id)
        self._providers[provider_id] = provider

    def get(self, provider_id: str) -> BaseProvider:
        try:
            return self._providers[provider_id]
        except KeyError:
            raise KeyError(f"Provider '{provider_id}' is not registered.") from None

    def select(self, provider_id: str) -> BaseProvider:
        """Make *provider_id* the active provider for runs started from now on."""
        provider = self.get(provider_id)
        self._active_id = provider_id
        logger.info("Active provider is now '%s'", provider_id)
        return provider

    @property
    def active(self) -> BaseProvider:
        return self._providers[self._active_id]

    @property
    def active_id(self) -> str:
        return self._active_id

    def ids(self) -> List[str]:
        return list(self._providers)

    def bind(self, provider_id: str | None = None) -> ProviderBinding:
        """Capture the table, with *provider_id* (or the active provider) as the bound default."""
        active_id = provider_id or self._active_id
        self.get(active_id)
        return ProviderBinding(self._providers, active_id)

    @classmethod
    def from_settings(cls, config: Settings) -> "ProviderRegistry":
        """
        Build the default table: the stub plus one provider per configured model.

        Models of a vendor without an API key are left out, so profile routing never lands on a
        provider that cannot answer.  Falls back to the stub as default when ``config.PROVIDER``
        names nothing registered.
        """
        providers: Dict[str, BaseProvider] = {"stub": load_provider("stub")}
        vendors = [
            ("openai", config.OPENAI_API_KEY, config.OPENAI_MODELS),
            ("anthropic", config.ANTHROPIC_API_KEY, config.ANTHROPIC_MODELS),
        ]
        for kind, api_key, models in vendors:
            if not api_key:
                logger.info("No API key for '%s'; skipping models %s", kind, models)
                continue
            for model in models:
                providers[model] = load_provider(kind, model, api_key=api_key)

        default_id = config.PROVIDER
        if default_id not in providers:
            logger.warning("Provider '%s' is not configured; using 'stub'", default_id)
            default_id = "stub"
        return cls(default_id, providers)
