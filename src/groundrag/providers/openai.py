"""
OpenAI LLM Provider.
"""

from typing import Any, AsyncIterator

from groundrag.errors import ApplicationError
from groundrag.providers.base import LLMProvider


class OpenAIProvider(LLMProvider):
    """
    Streams chat completions from the OpenAI API.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        organization: str | None = None,
        client=None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.organization = organization
        self._client = client

    def _get_client(self):
        """Get or create OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError:
                raise ImportError(
                    "openai package not installed. "
                    "Install with: pip install openai"
                )

            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                organization=self.organization
            )
        return self._client

    async def stream(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str = "gpt-3.5-turbo",
        temperature: float = 0.0,
        max_tokens: int = 512,
        **kwargs: Any
    ) -> AsyncIterator[str]:
        """Stream a completion from OpenAI."""
        client = self._get_client()

        params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": True,
        }
        params.update(kwargs)

        try:
            stream = await client.chat.completions.create(**params)
        except Exception as e:
            raise ApplicationError("Failed to generate completion", data={"error": str(e)}) from e

        async for chunk in stream:
            delta = chunk.choices[0].delta if chunk.choices else None

            if delta is not None and delta.content:
                yield delta.content
