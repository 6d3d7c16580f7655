"""Anthropic Claude provider."""

import logging
from typing import (
    Any,
    AsyncIterator,
)

from opdbus.config import settings
from opdbus.core.errors import ProviderError
from opdbus.providers.base import register_provider
from opdbus.providers.llm import (
    DEFAULT_TEMPERATURE,
    LLMProvider,
)

logger = logging.getLogger(__name__)


@register_provider("anthropic")
class AnthropicProvider(LLMProvider):
    """
    Anthropic Claude-based provider.

    Claude has no JSON response mode; plan answers go through the same sanitizing parser as every
    other provider, which copes with fences and surrounding prose.
    """

    def __init__(self, provider_id: str, api_key: str | None = None, **kwargs: Any):
        super().__init__(provider_id, api_key=api_key or settings.ANTHROPIC_API_KEY, **kwargs)

    def _client(self) -> Any:
        if not self._api_key:
            raise ProviderError("Anthropic API key missing")
        import anthropic  # pylint: disable=import-outside-toplevel

        return anthropic.AsyncAnthropic(api_key=self._api_key)

    async def _complete(
        self,
        system: str,
        user: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        json_mode: bool = False,
    ) -> str:
        import anthropic  # pylint: disable=import-outside-toplevel

        client = self._client()
        request: dict[str, Any] = {
            "model": self.id,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": user}],
            "temperature": temperature,
        }
        if system:
            request["system"] = system

        try:
            response = await client.messages.create(**request)
        except anthropic.AnthropicError as e:
            logger.error("Anthropic provider error: %s", str(e))
            raise ProviderError(f"Error calling Anthropic: {str(e)}") from e

        # Handle different content block types from Anthropic API
        return "".join(block.text for block in response.content if block.type == "text")

    async def _stream(self, prompt: str) -> AsyncIterator[str]:
        import anthropic  # pylint: disable=import-outside-toplevel

        client = self._client()
        try:
            async with client.messages.stream(
                model=self.id,
                max_tokens=self._max_tokens,
                messages=[{"role": "user", "content": prompt}],
            ) as stream:
                async for text in stream.text_stream:
                    yield text
        except anthropic.AnthropicError as e:
            raise ProviderError(f"Error streaming from Anthropic: {str(e)}") from e
