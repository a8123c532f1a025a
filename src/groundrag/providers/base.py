"""
Base LLM Provider interface.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator


class LLMProvider(ABC):
    """
    Abstract base class for answer generation providers.

    The retrieval core only consumes a lazy, single-pass stream of text
    chunks; transport to the caller is someone else's job.
    """

    @abstractmethod
    def stream(
        self,
        messages: list[dict[str, Any]],
        *,
        model: str,
        temperature: float = 0.0,
        max_tokens: int = 512,
        **kwargs: Any
    ) -> AsyncIterator[str]:
        """
        Stream a completion from the LLM.

        Args:
            messages: List of messages in API format
            model: Model identifier
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional provider-specific options

        Yields:
            Text chunks of the response
        """
        pass
