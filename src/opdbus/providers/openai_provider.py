"""OpenAI chat-completions provider."""

import logging
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
)

from opdbus.config import settings
from opdbus.core.errors import ProviderError
from opdbus.providers.base import register_provider
from opdbus.providers.llm import (
    DEFAULT_TEMPERATURE,
    LLMProvider,
)

logger = logging.getLogger(__name__)


def _messages(system: str, user: str) -> List[Dict[str, str]]:
    messages = [{"role": "user", "content": user}]
    if system:
        messages.insert(0, {"role": "system", "content": system})
    return messages


@register_provider("openai")
class OpenAIProvider(LLMProvider):
    """OpenAI-based provider; the provider id is the model name."""

    def __init__(self, provider_id: str, api_key: str | None = None, **kwargs: Any):
        super().__init__(provider_id, api_key=api_key or settings.OPENAI_API_KEY, **kwargs)

    def _client(self) -> Any:
        if not self._api_key:
            raise ProviderError("OpenAI API key missing")
        import openai  # pylint: disable=import-outside-toplevel

        return openai.AsyncOpenAI(api_key=self._api_key)

    async def _complete(
        self,
        system: str,
        user: str,
        *,
        temperature: float = DEFAULT_TEMPERATURE,
        json_mode: bool = False,
    ) -> str:
        import openai  # pylint: disable=import-outside-toplevel

        client = self._client()
        request: Dict[str, Any] = {
            "model": self.id,
            "messages": _messages(system, user),
            "temperature": temperature,
            "max_tokens": self._max_tokens,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}

        try:
            resp = await client.chat.completions.create(**request)
        except openai.OpenAIError as e:
            logger.error("OpenAI provider error: %s", str(e))
            raise ProviderError(f"Error calling OpenAI: {str(e)}") from e

        content = resp.choices[0].message.content
        if not content:
            logger.error("OpenAI provider returned empty response")
        return content or ""

    async def _stream(self, prompt: str) -> AsyncIterator[str]:
        import openai  # pylint: disable=import-outside-toplevel

        client = self._client()
        try:
            stream = await client.chat.completions.create(
                model=self.id,
                messages=_messages("", prompt),
                max_tokens=self._max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except openai.OpenAIError as e:
            raise ProviderError(f"Error streaming from OpenAI: {str(e)}") from e
